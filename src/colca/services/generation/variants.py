"""Camera-angle prompt variants for the four-shot batch."""

# Order matters: result i of a batch corresponds to suffix i
ANGLE_SUFFIXES = (
    "A dramatic low-angle shot from near the ground, making the car appear dominant with sky "
    "and surroundings rising behind it.",
    "A wide shot from the right front corner, showing the full car with strong perspective on "
    "the grille, headlights, and road context.",
    "A direct right-side profile shot, capturing the entire car cleanly with emphasis on "
    "proportions and reflections.",
    "An ultra-wide establishing shot from a distance, showing the full car in context with the "
    "broad environment and horizon.",
)

DEFAULT_SCENE_PROMPT = (
    "The car is parked neatly for a composed pose, framed by luxury condominiums with landscaped "
    "gardens and palm trees, warm golden-hour light with long gentle shadows, the scene feels "
    "calm and aspirational as the paint catches a soft glow. Cinematic, photorealistic "
    "automotive advertisement."
)


def build_prompt_variants(
    base_prompt: str, suffixes: tuple[str, ...] = ANGLE_SUFFIXES
) -> list[str]:
    """Combine the base prompt with each angle suffix."""
    base = base_prompt.strip()
    return [f"{base} {suffix}" for suffix in suffixes]
