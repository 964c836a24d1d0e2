"""
Prompt templates for the personal-trainer assistant.

The backend builds the system prompt from the profile the frontend sends along
with every chat request.
"""

SYSTEM_PROMPT = """\
You are AI Gym Buddy, an enthusiastic and knowledgeable personal trainer.

{profile_block}

Guidelines:
1. Be encouraging, positive and motivating
2. Tailor every recommendation to the user's goals, fitness level, equipment and available time
3. Keep responses under 300 words unless the user asks for a detailed workout plan
4. Prioritize safety: recommend proper form and warm-ups, and suggest consulting a professional for injuries or medical conditions
5. Use short lists and clear section headers (e.g. "Workout:", "Day 1:") for plans"""

PROFILE_BLOCK = """\
User profile:
- Goals: {goals}
- Fitness level: {level}
- Available equipment: {equipment}
- Time per workout: {time}"""

NO_PROFILE_BLOCK = """\
The user has not completed their profile yet. Give general advice and ask about \
their goals, level and equipment when it matters."""

NOT_SPECIFIED = "Not specified"


def _field(value) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v) or NOT_SPECIFIED
    if value is None:
        return NOT_SPECIFIED
    return str(value).strip() or NOT_SPECIFIED


def build_system_prompt(profile: dict | None) -> str:
    """System prompt for one chat request, personalised from the profile record."""
    profile = profile or {}
    fields = {key: profile.get(key) for key in ("goals", "level", "equipment", "time")}

    if not any(_field(v) != NOT_SPECIFIED for v in fields.values()):
        return SYSTEM_PROMPT.format(profile_block=NO_PROFILE_BLOCK)

    profile_block = PROFILE_BLOCK.format(**{key: _field(v) for key, v in fields.items()})
    name = _field(profile.get("name"))
    if name != NOT_SPECIFIED:
        profile_block = f"The user's name is {name}.\n{profile_block}"
    return SYSTEM_PROMPT.format(profile_block=profile_block)
