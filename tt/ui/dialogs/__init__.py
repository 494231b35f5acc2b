from .session_edit import SessionEditDialog

__all__ = ["SessionEditDialog"]
