from clubevents.notifications.changes import ChangeEvent, ChangeKind

__all__ = ["ChangeEvent", "ChangeKind"]
