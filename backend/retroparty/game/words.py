from __future__ import annotations

import random

from .models import DuelWord


LEGIT = "LEGIT"
BULLSHIT = "BULLSHIT"
CATEGORIES = (LEGIT, BULLSHIT)

DUEL_WORDS: list[DuelWord] = [
    DuelWord("Continuous integration", LEGIT),
    DuelWord("Definition of done", LEGIT),
    DuelWord("Burndown chart", LEGIT),
    DuelWord("Technical debt", LEGIT),
    DuelWord("Feature flag", LEGIT),
    DuelWord("Pair programming", LEGIT),
    DuelWord("Story points", LEGIT),
    DuelWord("Blue-green deployment", LEGIT),
    DuelWord("Acceptance criteria", LEGIT),
    DuelWord("Sprint review", LEGIT),
    DuelWord("Code freeze", LEGIT),
    DuelWord("Backlog grooming", LEGIT),
    DuelWord("Quantum standup", BULLSHIT),
    DuelWord("Agile waterfall sync", BULLSHIT),
    DuelWord("Velocity inversion", BULLSHIT),
    DuelWord("Holistic merge conflict", BULLSHIT),
    DuelWord("Blockchain retrospective", BULLSHIT),
    DuelWord("Synergy backlog", BULLSHIT),
    DuelWord("Hyper-scrum", BULLSHIT),
    DuelWord("Reverse kanban", BULLSHIT),
    DuelWord("Disruptive story point", BULLSHIT),
    DuelWord("Cloud-native standup", BULLSHIT),
    DuelWord("Paradigm refactor", BULLSHIT),
    DuelWord("Omnichannel sprint", BULLSHIT),
]


def pick_words(words: list[DuelWord], count: int, rng: random.Random | None = None) -> list[DuelWord]:
    pool = list(words)
    (rng or random).shuffle(pool)
    return [DuelWord(w.text, w.category) for w in pool[:count]]
