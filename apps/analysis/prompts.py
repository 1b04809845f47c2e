SEARCH_SYSTEM_PROMPT = """
You rank surveys against a natural-language search query.
You receive a JSON object with:
- query: the search query
- surveys: array of {id, title, area, description}

Return a JSON object {"matches": [{"id": "<survey id>", "reason": "<short explanation>"}]}
listing ONLY surveys that match, best match first. Use ids exactly as given.
Return {"matches": []} when nothing matches.
"""

VALIDATE_SYSTEM_PROMPT = """
You check a single survey response against the creator's acceptance guidelines.
You receive a JSON object with:
- guidelines: free-text rubric describing permitted responses
- response: the respondent's text

Return a JSON object {"is_valid": true|false, "feedback": "<one or two sentences>"}.
Judge only against the guidelines; do not rewrite the response.
"""

SUMMARY_SYSTEM_PROMPT = """
You summarize the free-text responses collected by a survey.
Follow the creator's summary instructions:
{instructions}

Write a readable summary in plain prose. Do not quote respondents by name.
"""


def format_responses(responses) -> str:
    return "\n".join(f"Response {i}: {text}" for i, text in enumerate(responses, start=1))
