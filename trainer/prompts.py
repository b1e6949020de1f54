"""
Fixed prompt text for the two evaluation steps.

Step 1 asks the model for an example answer in the selected mode; Step 2 asks
it to coach the learner by comparing their answer with that example. The
feedback markers below are what the UI highlights, so the system prompt asks
for them verbatim.
"""

from .models import Mode

# Candidate topics shown to the learner
TOPICS = [
    "cucumber",
    "gravity",
    "photosynthesis",
    "I'm tired",
    "blockchain",
    "inflation",
    "democracy",
    "quantum computer",
]

STRENGTH_MARKER = "✅"
IMPROVEMENT_MARKER = "🔧"

EXAMPLE_TEMPERATURE = 0.7
FEEDBACK_TEMPERATURE = 0.8

EXAMPLE_SYSTEM_PROMPT = (
    "You are a friendly language coach who assists learners with paraphrase "
    "and explanation practice. Answer with the example only: no preamble, no "
    "headings, at most three sentences."
)

EXAMPLE_TEMPLATES = {
    Mode.PARAPHRASE: (
        'Paraphrase "{topic}": express the same meaning using different words '
        "and sentence structure."
    ),
    Mode.CIRCUMLOCUTION: (
        'Describe "{topic}" without using the word itself or any word derived from it. '
        "Talk about what it looks like, what it does and what it is used for."
    ),
    Mode.ELI5: (
        'Explain "{topic}" so that a five-year-old could understand it. '
        "Use short sentences and everyday words."
    ),
}

FEEDBACK_SYSTEM_PROMPT = (
    "You are an encouraging language coach reviewing a learner's rephrasing exercise. "
    "Reply in exactly three parts:\n"
    f"1. One line starting with \"{STRENGTH_MARKER}\" that commends a concrete strength of the learner's answer.\n"
    f"2. One line starting with \"{IMPROVEMENT_MARKER}\" that suggests exactly one improvement, "
    "drawing on the example answer where it helps.\n"
    "3. A short closing sentence of encouragement.\n"
    "Keep the whole reply under 80 words."
)

FEEDBACK_TEMPLATE = (
    "Topic: {topic}\n"
    "Mode: {mode_description}\n"
    "\n"
    "Learner's answer:\n"
    "{user_answer}\n"
    "\n"
    "Example answer:\n"
    "{example}"
)

# System prompt for the free-form chat screen
CHAT_SYSTEM_PROMPT = (
    "You are a patient conversation partner for a language learner. Keep replies "
    "concise, correct mistakes kindly and prefer everyday language."
)
