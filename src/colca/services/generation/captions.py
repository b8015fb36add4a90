"""Ad headline prompt and post-processing."""

import re

DEFAULT_MAX_WORDS = 8

QUOTE_CHARS = "\"'“”‘’"

CAPTION_PROMPT_TEMPLATE = """Write ONE short, catchy automotive ad headline for this scene:

<scene>
{scene}
</scene>

Rules:
- Return ONLY the headline text. No quotes, no punctuation at the end, no explanations.
- Max {max_words} words.
- No brand names or model names.
- Tone: bold, modern, aspirational.
- English.
- Output format: a single line of text, no line breaks."""


def build_caption_prompt(scene: str, max_words: int = DEFAULT_MAX_WORDS) -> str:
    return CAPTION_PROMPT_TEMPLATE.format(scene=scene, max_words=max_words)


def clean_caption(text: str, max_words: int = DEFAULT_MAX_WORDS) -> str:
    """Reduce model output to a single unquoted line of at most ``max_words`` words.

    >>> clean_caption('"Own the Golden Hour"\\nExtra line')
    'Own the Golden Hour'
    """
    if not text:
        return ""

    first_line = re.split(r"\r?\n", text.strip(), maxsplit=1)[0]
    unquoted = first_line.strip().strip(QUOTE_CHARS).strip()
    return " ".join(unquoted.split()[:max_words])
