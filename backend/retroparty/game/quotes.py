from __future__ import annotations

from .models import QuizQuote


ROLES = ("MANAGER", "PO", "DEV", "SCRUM_MASTER", "QA_SUPPORT")

QUOTES: list[QuizQuote] = [
    QuizQuote("q01", "Can we have it by Friday? It's a small change.", "MANAGER"),
    QuizQuote("q02", "Let's align on the roadmap before we commit.", "MANAGER"),
    QuizQuote("q03", "What is the business value of this story?", "PO"),
    QuizQuote("q04", "That's out of scope for this increment.", "PO"),
    QuizQuote("q05", "It works on my machine.", "DEV"),
    QuizQuote("q06", "I just need to refactor one more thing.", "DEV"),
    QuizQuote("q07", "Let's timebox this discussion.", "SCRUM_MASTER"),
    QuizQuote("q08", "What's blocking you right now?", "SCRUM_MASTER"),
    QuizQuote("q09", "Did anyone test this on the old browser?", "QA_SUPPORT"),
    QuizQuote("q10", "The customer says it's broken again.", "QA_SUPPORT"),
    QuizQuote("q11", "We need a KPI for that.", "MANAGER"),
    QuizQuote("q12", "Can we split this story?", "PO"),
    QuizQuote("q13", "Who merged to main on a Friday?", "DEV"),
    QuizQuote("q14", "Let's keep the standup to fifteen minutes.", "SCRUM_MASTER"),
    QuizQuote("q15", "I reproduced it, here are the steps.", "QA_SUPPORT"),
]
