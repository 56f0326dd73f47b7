"""
append_only.py - Write-once enforcement for audit tables.

Two layers:
1. ORM guard: any flush that updates or deletes an append-only row raises
   AppendOnlyViolation before SQL is emitted (all dialects).
2. PostgreSQL trigger: rejects UPDATE/DELETE issued outside the ORM.
"""

from sqlalchemy import DDL, event
from sqlalchemy.orm import Session


class AppendOnlyViolation(Exception):
    """Raised when code tries to mutate or delete an audit row."""


class AppendOnly:
    """Marker mixin for tables that only ever receive INSERTs."""


@event.listens_for(Session, "before_flush")
def _reject_mutation(session, flush_context, instances):
    for obj in list(session.dirty) + list(session.deleted):
        if isinstance(obj, AppendOnly) and (
            obj in session.deleted or session.is_modified(obj)
        ):
            raise AppendOnlyViolation(
                f"{type(obj).__tablename__} rows are append-only; "
                "update and delete are forbidden"
            )


def attach_mutation_trigger(table) -> None:
    """Attach the PostgreSQL append-only trigger to ``table`` on create."""
    name = table.name
    trigger = DDL(f"""
        CREATE OR REPLACE FUNCTION reject_{name}_mutation()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION '{name} is append-only. Operation % is forbidden.', TG_OP;
        END;
        $$ LANGUAGE plpgsql;

        CREATE TRIGGER prevent_{name}_mutation
        BEFORE UPDATE OR DELETE ON {name}
        FOR EACH ROW EXECUTE FUNCTION reject_{name}_mutation();
    """)
    event.listen(table, "after_create", trigger.execute_if(dialect="postgresql"))
