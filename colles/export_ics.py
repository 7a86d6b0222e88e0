"""
iCalendar (.ics) export.

We convert a student's computed program into a calendar file that can be
imported into:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

from colles.model import Week

# Colles last one hour
COLLE_DURATION = timedelta(hours=1)


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(dt: datetime) -> str:
    """
    Format a datetime as ICS local datetime string 'YYYYMMDDTHHMM00'.
    """
    return dt.strftime("%Y%m%dT%H%M00")


def export_program_to_ics(student_name: str, weeks: list[Week], out_path: str | Path) -> int:
    """
    Export the colles of `weeks` to an .ics file. Returns number of exported colles.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//Colles//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for week in weeks:
        for colle in week.colles:
            dtstart = _dt_local(colle.start)
            uid = f"{student_name}-{dtstart}-{colle.subject_index}"

            lines.append("BEGIN:VEVENT")
            lines.append(f"UID:{_ics_escape(uid)}")
            lines.append(f"DTSTAMP:{dtstamp}")
            lines.append(f"DTSTART:{dtstart}")
            lines.append(f"DTEND:{_dt_local(colle.start + COLLE_DURATION)}")
            lines.append(f"SUMMARY:{_ics_escape(f'{colle.subject} ({colle.teacher})')}")
            if colle.room:
                lines.append(f"LOCATION:{_ics_escape(colle.room)}")
            if colle.subject_url:
                lines.append(f"URL:{colle.subject_url}")
            lines.append("END:VEVENT")
            count += 1

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    out.write_text("\r\n".join(lines) + "\r\n", encoding="utf-8")
    return count
