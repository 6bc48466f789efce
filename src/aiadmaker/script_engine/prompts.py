from __future__ import annotations

from textwrap import dedent

AD_SCRIPT_PROMPT = dedent(
    """
    Generate a 30-50 word video ad script for: {prompt}.

    Start with an attention-grabbing hook to entice viewers to watch. Keep it concise, engaging,
    and suitable for a 15-30 second ad. Use a warm, inviting tone and include a clear call-to-action.
    Split the script into 3-4 complete sentences, each ending with a period, exclamation mark or
    question mark.

    Respond with the narration text only: no title, no scene directions, no quotation marks.
    """
)


KEYWORD_PROMPT = dedent(
    """
    Extract 5-8 specific, contextually relevant keywords for searching stock media that matches
    the following ad narration. Capture key themes, actions and objects, including descriptive
    terms that give the search context.

    Narration:
    {text}

    Respond ONLY with a JSON array of lowercase keywords, for example ["fresh bread", "bakery"].
    """
)


def render_script_prompt(prompt: str) -> str:
    return AD_SCRIPT_PROMPT.format(prompt=prompt.strip())


def render_keyword_prompt(text: str) -> str:
    return KEYWORD_PROMPT.format(text=text.strip())
