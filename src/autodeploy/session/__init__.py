from .shell import ChatSession, SessionContext, format_plan, format_summary

__all__ = ["ChatSession", "SessionContext", "format_plan", "format_summary"]
