from .misc import now_iso, now_ms, format_timestamp, format_time, format_money

__all__ = ["now_iso", "now_ms", "format_timestamp", "format_time", "format_money"]
