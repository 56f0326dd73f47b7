"""
001_audit_ledger.py - Create the audit ledger and audit record tables.

Both tables are append-only: PostgreSQL triggers reject UPDATE and DELETE.
The unique constraint on previous_hash keeps the ledger a single chain.

Revision ID: 001_audit_ledger
Revises:
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers
revision = "001_audit_ledger"
down_revision = None
branch_labels = None
depends_on = None

APPEND_ONLY_TABLES = ("audit_chain_entries", "audit_records")


def upgrade() -> None:
    op.create_table(
        "audit_chain_entries",
        sa.Column("sequence", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.String(40), nullable=False),
        sa.Column("data_hash", sa.String(64), nullable=False),
        sa.Column("previous_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("entry_hash", sa.String(64), nullable=False, unique=True),
    )
    op.create_index(
        "ix_audit_chain_entries_entry_hash", "audit_chain_entries", ["entry_hash"]
    )

    op.create_table(
        "audit_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("repo_name", sa.String(255), nullable=False),
        sa.Column("pr_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("report", sa.Text(), nullable=False),
        sa.Column("result_canonical", sa.Text(), nullable=False),
        sa.Column("entry_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_records_repo_name", "audit_records", ["repo_name"])
    op.create_index("ix_audit_records_status", "audit_records", ["status"])
    op.create_index(
        "idx_audit_records_repo_pr", "audit_records", ["repo_name", "pr_number"]
    )

    for table in APPEND_ONLY_TABLES:
        op.execute(f"""
            CREATE OR REPLACE FUNCTION reject_{table}_mutation()
            RETURNS TRIGGER AS $$
            BEGIN
                RAISE EXCEPTION '{table} is append-only. Operation % is forbidden.', TG_OP;
            END;
            $$ LANGUAGE plpgsql;
        """)
        op.execute(f"""
            CREATE TRIGGER prevent_{table}_mutation
            BEFORE UPDATE OR DELETE ON {table}
            FOR EACH ROW EXECUTE FUNCTION reject_{table}_mutation();
        """)


def downgrade() -> None:
    for table in APPEND_ONLY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS prevent_{table}_mutation ON {table}")
        op.execute(f"DROP FUNCTION IF EXISTS reject_{table}_mutation()")

    op.drop_index("idx_audit_records_repo_pr")
    op.drop_index("ix_audit_records_status")
    op.drop_index("ix_audit_records_repo_name")
    op.drop_table("audit_records")
    op.drop_index("ix_audit_chain_entries_entry_hash")
    op.drop_table("audit_chain_entries")
