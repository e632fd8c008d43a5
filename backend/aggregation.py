"""Derived metrics over a collection of journal entries.

Everything here is a pure function of the entries passed in: no storage
access, no side effects. Collections are expected newest first (the order
the store returns) unless a function says otherwise.
"""

from schemas import EMOTIONS, round_half_up

EMOTION_LABELS = {
    "joy": "Joy",
    "sadness": "Sadness",
    "anger": "Anger",
    "fear": "Fear",
    "calm": "Calm",
    "surprise": "Surprise",
}

EMOTION_COLORS = {
    "joy": "#FBBF24",
    "sadness": "#60A5FA",
    "anger": "#F87171",
    "fear": "#A78BFA",
    "calm": "#34D399",
    "surprise": "#F472B6",
}

NO_EMOTION = "none"

POSITIVE = ("joy", "calm")
NEGATIVE = ("sadness", "anger", "fear")

# Guards the ratio denominator on all-zero input
EPSILON = 0.1

DRIFT_INTENSITY_DELTA = 3


def dominant_emotion(scores):
    return scores.dominant()


def emotion_label(emotion):
    return EMOTION_LABELS.get(emotion, "None")


def most_frequent_emotion(entries):
    """Mode of the entries' dominant emotions, or "none" when empty.

    Ties go to the category that reached the winning count first while
    scanning in collection order.
    """
    counts = {}
    winner, best = NO_EMOTION, 0
    for entry in entries:
        emotion = entry.dominant_emotion
        counts[emotion] = counts.get(emotion, 0) + 1
        if counts[emotion] > best:
            winner, best = emotion, counts[emotion]
    return winner


def _masses(entries):
    positive = sum(getattr(e.emotions, name) for e in entries for name in POSITIVE)
    negative = sum(getattr(e.emotions, name) for e in entries for name in NEGATIVE)
    return positive, negative


def positivity_split(entries):
    """(positive %, negative %) as integers.

    Each side is computed on its own against the same epsilon-padded total,
    so the pair usually sums to a little under 100.
    """
    if not entries:
        return 0, 0
    positive, negative = _masses(entries)
    total = positive + negative + EPSILON
    return round_half_up(positive / total * 100), round_half_up(negative / total * 100)


def positivity_ratio(entries):
    """Unrounded positive percentage, as handed to the insight generator."""
    if not entries:
        return 0.0
    positive, negative = _masses(entries)
    return positive / (positive + negative + EPSILON) * 100


def chronological(entries):
    """Oldest first. Input is newest first, so reverse before the stable sort
    to keep same-millisecond entries in save order."""
    return sorted(reversed(entries), key=lambda e: e.created_at)


def drift_flags(entries):
    """Drift flag per entry, paired with the entry, oldest first."""
    ordered = chronological(entries)
    flags = []
    for i, entry in enumerate(ordered):
        is_drift = False
        if i > 0:
            prev = ordered[i - 1]
            intensity_delta = abs(entry.intensity - prev.intensity)
            is_drift = (
                intensity_delta > DRIFT_INTENSITY_DELTA
                or entry.dominant_emotion != prev.dominant_emotion
            )
        flags.append((entry, is_drift))
    return flags


def stability_index(entries):
    if len(entries) < 2:
        return 100
    drifts = sum(1 for _, is_drift in drift_flags(entries) if is_drift)
    return round_half_up(max(0, 100 - drifts / len(entries) * 200))


def emotion_change_stability(entries):
    """Share of adjacent entries (stored order) keeping the same dominant emotion.

    This is the stability figure given to the insight generator; it ignores
    intensity, unlike stability_index.
    """
    if not entries:
        return 100.0
    changes = sum(
        1
        for prev, entry in zip(entries, entries[1:])
        if entry.dominant_emotion != prev.dominant_emotion
    )
    return max(0.0, 100 - changes / len(entries) * 100)


def build_timeline(entries):
    """Chart points, oldest first."""
    points = []
    for entry, is_drift in drift_flags(entries):
        created = entry.created_at
        point = {
            "timestamp": int(created.timestamp() * 1000),
            "dateLabel": f"{created:%b} {created.day}",
        }
        point.update(dict(entry.emotions.items()))
        point.update({
            "intensity": entry.intensity,
            "confidence": entry.confidence,
            "behaviorConfidence": entry.behavior_confidence,
            "userRating": entry.user_rating / 5,
            "isDrift": is_drift,
        })
        points.append(point)
    return points


def emotion_distribution(entries):
    """Average score per emotion across all entries; zero averages dropped."""
    if not entries:
        return []
    slices = []
    for name in EMOTIONS:
        value = sum(getattr(e.emotions, name) for e in entries) / len(entries)
        if value > 0:
            slices.append({
                "name": EMOTION_LABELS[name],
                "value": value,
                "color": EMOTION_COLORS[name],
            })
    return slices


def dashboard_summary(entries, streak):
    positive, negative = positivity_split(entries)
    frequent = most_frequent_emotion(entries)
    latest = entries[0] if entries else None
    return {
        "streak": streak,
        "stabilityIndex": stability_index(entries),
        "mostFrequentEmotion": frequent,
        "mostFrequentEmotionLabel": emotion_label(frequent),
        "positiveRatio": positive,
        "negativeRatio": negative,
        "analysisFidelity": latest.behavior_confidence if latest else None,
        "entryCount": len(entries),
        "timeline": build_timeline(entries),
        "distribution": emotion_distribution(entries),
    }
