"""ColorCal - which calendars are busy on which days."""
