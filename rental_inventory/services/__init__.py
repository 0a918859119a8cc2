"""Services package - availability, calendars and reservation lifecycle."""
