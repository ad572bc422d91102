from __future__ import annotations

QUESTIONS: dict[str, list[str]] = {
    "blue": [
        "What worked best this sprint?",
        "What did we ship that we can be proud of?",
        "Which moment was the most productive for the team?",
        "What took longer than expected?",
        "What exactly happened when we hit a problem?",
        "Which decision had a positive impact?",
        "Which event stood out during the sprint?",
        "Which task turned out simpler than planned?",
        "What was more complex than planned?",
        "Which collaboration worked well?",
        "Which tool or practice helped us?",
        "When did the sprint feel the smoothest?",
        "What would we do again exactly the same way?",
        "What did we learn about how we work?",
        "Sum up the sprint in one sentence.",
        "Which important fact might be forgotten if nobody said it?",
    ],
    "green": [
        "Thank someone for their patience or support.",
        "Name an action that deserves recognition.",
        "Thank someone who made your work easier.",
        "Say thanks to someone who took the initiative.",
        "Thank someone for their team spirit.",
        "Who unblocked you this sprint, and how?",
        "Which small gesture made a difference for you?",
    ],
    "red": [
        "What slowed us down the most?",
        "Which recurring problem should we stop ignoring?",
        "Where did communication break down?",
        "Which meeting felt like a waste of time?",
        "What frustrated you this sprint?",
        "Which risk did we underestimate?",
        "What would you remove from our process tomorrow?",
    ],
    "violet": [
        "Propose one concrete improvement for next sprint.",
        "What experiment should we try next?",
        "If you had a magic wand, what would you change?",
        "Which habit should the team adopt?",
        "What should we start doing right away?",
        "Which action item would have the biggest impact?",
    ],
    "bonus": [
        "Give a kudo to someone in the room.",
        "Share a win, however small.",
        "Tell us something that made you smile this sprint.",
        "Which teammate would you pair with again, and why?",
    ],
}

MISSING_QUESTION = "(missing question)"


def pick_question(tile_type: str, rng) -> str:
    """Pick a prompt for ``tile_type`` using ``rng.random()``; empty if none."""
    items = QUESTIONS.get(tile_type) or []
    if not items:
        return ""
    return items[int(rng.random() * len(items))]
