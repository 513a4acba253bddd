"""
Centrally defined prompts for every generative operation.

Providers never build their own prompts; the orchestrator renders these
templates and hands the resulting strings to whichever provider it tries,
so every backend sees identical instructions.
"""
from __future__ import annotations

from scripture_gateway.domain import VerseReference

# =============================================================================
# System Instructions
# =============================================================================

SCRIPTURE_SCHOLAR = (
    "You are a Biblical scholar with deep knowledge of scripture. Your task is to "
    "provide accurate Bible verses in the requested translation format."
)
TAKEAWAY_EXPERT = (
    "You are a scripture expert, skilled at extracting key takeaways from religious "
    "texts. Your task is to analyze a given verse reference and provide the key takeaway."
)
SCORING_EXPERT = (
    "You are an expert in theology. You are an expert in analyzing Bible verses and "
    "determining how accurately a reader understands their context."
)
FEEDBACK_EXPERT = (
    "You are an expert in theology. You provide insightful and encouraging feedback "
    "on how users apply Bible verses to their lives."
)
TAKEAWAY_VALIDATOR = (
    "You are a theological text evaluator. You will be given a verse reference and a "
    "take-away text. Your task is to evaluate the take-away text in the context of the "
    "verse and respond accurately."
)
VERSE_FINDER = (
    "You are a Biblical scholar with comprehensive knowledge of scripture. Your task is "
    "to suggest relevant Bible verses based on topics or descriptions provided."
)


# =============================================================================
# User Prompts
# =============================================================================

def scripture_prompt(ref: VerseReference, translation: str) -> str:
    """Ask for verse text as a JSON array of ``{verse_num, verse_string}``."""
    if ref.is_single_verse:
        return (
            f"Please provide the Bible verse for {ref} in the {translation} translation.\n\n"
            "Return ONLY a JSON array in the following format:\n"
            "[\n"
            "    {\n"
            f'        "verse_num": {ref.start_verse},\n'
            '        "verse_string": "verse_text"\n'
            "    }\n"
            "]\n\n"
            "Do not include any other text or explanations."
        )
    return (
        f"Please provide the Bible verses for {ref} in the {translation} translation.\n\n"
        "Return ONLY a JSON array in the following format:\n"
        "[\n"
        "    {\n"
        '        "verse_num": verse_number,\n'
        '        "verse_string": "verse_text"\n'
        "    }\n"
        "]\n\n"
        "Do not include any other text or explanations."
    )


def takeaway_prompt(verse_ref: str) -> str:
    return (
        f"Please provide a key takeaway or main message from the Bible verse {verse_ref}.\n\n"
        "Provide a concise, meaningful explanation of the verse's core message or teaching.\n"
        "Keep the response to 2-3 sentences maximum.\n"
        "Focus on practical application and spiritual significance."
    )


def score_prompt(verse_ref: str, user_comment: str) -> str:
    """
    Ask for a contextual accuracy score as a JSON object.

    ``ApplicationFeedback`` is requested empty here; it is produced by a
    separate completion using ``application_feedback_prompt``.
    """
    return (
        "You will be provided with a Bible verse reference and a user's explanation to evaluate.\n\n"
        f"Bible verse reference: {verse_ref}\n"
        f"Text to evaluate: {user_comment}\n\n"
        "Follow these steps:\n\n"
        "1. Calculate the `ContextScore`: Evaluate the contextual accuracy of the text. "
        "Consider whether it aligns with the original meaning and intent of the verse. "
        "Provide a score between 0 and 100.\n"
        "2. Provide `ContextExplanation`: Explain how you derived the `ContextScore`.\n\n"
        "Respond ONLY in the following JSON format:\n\n"
        "{\n"
        '"ContextScore": integer between 0 to 100,\n'
        '"ContextExplanation": "Explanation of the ContextScore",\n'
        '"ApplicationFeedback": ""\n'
        "}\n\n"
        "Ensure that your response is ONLY in JSON format with no other text outside of the JSON structure."
    )


def application_feedback_prompt(verse_ref: str, user_comment: str) -> str:
    return (
        f"Please provide feedback on how a user is applying the Bible verse {verse_ref} to their life.\n\n"
        f'User\'s application: "{user_comment}"\n\n'
        "Provide constructive feedback that is:\n"
        "1. Insightful: Offer a deeper understanding of the verse and its implications.\n"
        "2. Encouraging: Affirm the user's efforts and provide motivation."
    )


def takeaway_validation_prompt(verse_ref: str, takeaway: str) -> str:
    return (
        f"Please evaluate whether the following takeaway accurately represents the Bible verse {verse_ref}:\n\n"
        f'Takeaway to evaluate: "{takeaway}"\n\n'
        'Respond with only "true" if the takeaway is accurate and appropriate, '
        'or "false" if it misrepresents the verse.'
    )


def verse_search_prompt(description: str) -> str:
    return (
        f'Please suggest Bible verses that relate to the following description or topic: "{description}"\n\n'
        "Return ONLY a JSON array of verse references in this exact format:\n"
        "[\n"
        '    {"book": "BookName", "chapter": number, "startVerse": number, "endVerse": number}\n'
        "]\n\n"
        "If no verses match, return an empty array [].\n"
        "Suggest 3-5 relevant verses. Do not include any other text or explanations."
    )
