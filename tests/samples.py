"""Sample calendar data used across the tests."""

PUBLIC_EVENT = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:public-event
DTSTAMP:20240101T090000Z
DTSTART:20240101T100000Z
DTEND:20240101T110000Z
SUMMARY:Team Meeting
LOCATION:Room 1
CLASS:PUBLIC
END:VEVENT
END:VCALENDAR
"""

LEGACY_EVENT = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:legacy-event
DTSTAMP:20240101T090000Z
DTSTART:20240102T100000Z
DTEND:20240102T110000Z
SUMMARY:Lunch
END:VEVENT
END:VCALENDAR
"""

LEGACY_TODO = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VTODO
UID:legacy-todo
DTSTAMP:20240101T090000Z
DUE:20240201T100000Z
SUMMARY:File taxes
END:VTODO
END:VCALENDAR
"""

PRIVATE_EVENT = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:private-event
DTSTAMP:20240101T090000Z
DTSTART:20240103T100000Z
DTEND:20240103T110000Z
SUMMARY:Doctor appointment
DESCRIPTION:Annual checkup
LOCATION:Clinic
CLASS:PRIVATE
BEGIN:VALARM
ACTION:DISPLAY
DESCRIPTION:Reminder
TRIGGER:-PT15M
END:VALARM
END:VEVENT
END:VCALENDAR
"""

CONFIDENTIAL_EVENT = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:confidential-event
DTSTAMP:20240101T090000Z
DTSTART:20240104T100000Z
DTEND:20240104T110000Z
SUMMARY:Salary review
DESCRIPTION:Numbers inside
CLASS:CONFIDENTIAL
END:VEVENT
END:VCALENDAR
"""

# A public event followed by a private task in the same object
MIXED_WITH_PRIVATE_TODO = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:mixed
DTSTAMP:20240101T090000Z
DTSTART:20240105T100000Z
DTEND:20240105T110000Z
SUMMARY:Public part
CLASS:PUBLIC
END:VEVENT
BEGIN:VTODO
UID:mixed
DTSTAMP:20240101T090000Z
SUMMARY:Secret task
CLASS:PRIVATE
END:VTODO
END:VCALENDAR
"""

# Mentions CLASS but is truncated
BROKEN_WITH_CLASS = """BEGIN:VCALENDAR
VERSION:2.0
BEGIN:VEVENT
UID:broken
CLASS:PUBLIC
"""


