from .date_window import DATE_FORMAT, DateWindowResolver, parse_date

__all__ = ["DATE_FORMAT", "DateWindowResolver", "parse_date"]
