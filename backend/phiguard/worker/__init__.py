from .supervisor import SupervisorClosed, TaskSupervisor

__all__ = ["SupervisorClosed", "TaskSupervisor"]
