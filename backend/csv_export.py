# csv_export.py
from datetime import date
from pathlib import Path

from aggregation import (
    emotion_label,
    most_frequent_emotion,
    positivity_split,
    stability_index,
)

FILENAME_PREFIX = "emotional-drift-report"

HEADERS = [
    "Timestamp", "Text", "Dominant Emotion",
    "Joy", "Sadness", "Anger", "Fear", "Calm", "Surprise",
    "Intensity", "Confidence (%)", "Behavior-Assisted Confidence (%)",
    "User Rating (1-5)", "Typing Speed (cps)", "Time Spent (s)",
]


def quote(text):
    """Wrap in quotes, doubling any quote inside."""
    return '"' + text.replace('"', '""') + '"'


def _entry_row(e):
    s = e.emotions
    return [
        e.timestamp,
        quote(e.text),
        e.dominant_emotion,
        f"{s.joy:.2f}",
        f"{s.sadness:.2f}",
        f"{s.anger:.2f}",
        f"{s.fear:.2f}",
        f"{s.calm:.2f}",
        f"{s.surprise:.2f}",
        str(e.intensity),
        str(e.confidence),
        str(e.behavior_confidence),
        str(e.user_rating),
        f"{e.behavioral_signals.typing_speed:.2f}",
        f"{e.behavioral_signals.time_spent:.1f}",
    ]


def render_csv(entries):
    """Entries (in the order given) followed by a summary block."""
    positive, negative = positivity_split(entries)
    rows = [HEADERS]
    rows.extend(_entry_row(e) for e in entries)
    rows.extend([
        [],
        ["Summary Insights"],
        ["Stability Indicator", f"{stability_index(entries)}%"],
        ["Most Frequent Emotion", emotion_label(most_frequent_emotion(entries))],
        ["Positive Ratio", f"{positive}%"],
        ["Negative Ratio", f"{negative}%"],
    ])
    return "\n".join(",".join(row) for row in rows)


def export_filename(today=None):
    today = today or date.today()
    return f"{FILENAME_PREFIX}-{today.isoformat()}.csv"


def write_csv(entries, export_dir: Path, today=None):
    export_dir = Path(export_dir)
    export_dir.mkdir(parents=True, exist_ok=True)
    filename = export_dir / export_filename(today)
    with open(filename, "w", newline="", encoding="utf-8") as f:
        f.write(render_csv(entries))
    return filename
