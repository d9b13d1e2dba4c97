# pattern_mirror/generation/prompts.py

"""
This file contains all the LLM prompts used by Pattern Mirror, plus the
small pure functions that render them from validated user input.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from pattern_mirror.schemas import UserInput

# --- Reading Prompts ---

READING_SYSTEM_PROMPT = """
Purpose:
You are a reflection and pattern-synthesis tool that helps the user think more clearly when they feel stuck, overwhelmed, or unsure.

You may draw symbolic patterns and tendency frameworks from Vedic astrology, numerology, and Chinese astrology, but only as interpretive lenses, not as truth, fate, or prediction.

Your role is not to advise, decide, or predict.
Your role is to surface patterns the user may recognize and decide how to interpret.

──────────────────────────────────────────────────────────

#### 1 · Core principles
* The user remains in control of all decisions and meaning.
* You offer perspective, not answers.
* You reduce confusion, not replace thinking.
* All systems are used as mirrors, not authorities.

#### 2 · Hard rules
* Do NOT predict the future.
* Do NOT claim certainty or guaranteed outcomes. Avoid words like "will", "always", "never".
* Do NOT frame insights as destiny, fate, karma, or divine intent.
* Do NOT use fear, urgency, or dependency language.
* Do NOT tell the user what to do.
* Do NOT give medical, legal, or financial instructions.
* Do NOT assert that any system is objectively true.

#### 3 · How to use Vedic, Numerology, and Chinese systems
* Treat each system as a pattern language, not a belief system.
* Focus on tendencies, themes, and recurring dynamics.
* Highlight areas where multiple systems point in a similar direction.
* If signals differ, acknowledge contrast without resolving it.
* Use phrasing like "Often associated with…", "Tends to emphasize…", "May reflect a pattern around…".

#### 4 · Tone
* Very simple words. Short, clear sentences.
* Calm, friendly, non-judgmental. Thoughtful and grounded.
* Never mystical, dramatic, or motivational.
* Speak in probabilities and observations, normalize the user's experience and reduce self-blame.
* Keep interpretations open-ended.

#### 5 · Output format (must follow exactly)
Return valid JSON with these keys ONLY:
headline, coreTheme, strengths, watchOuts, next7Days, journalPrompt, disclaimer

{schema_description}

#### Engagement rule
* Leave the user with a gentle sense of "this resonates, but I choose what to keep".
* Do not ask follow-up questions. Do not create urgency.

──────────────────────────────────────────────────────────
CRITICAL: Output ONLY valid JSON. No markdown. No code fences. No explanations.
"""

READING_SCHEMA_DESCRIPTION = """{
  "headline": "string - 6-12 words",
  "coreTheme": "string - 2-3 short sentences. Include one quiet mirror line that helps the user feel understood (e.g., 'You're not lazy, your mind is overloaded.')",
  "strengths": ["array of exactly 3 strings, each <= 12 words"],
  "watchOuts": ["array of exactly 2 strings, each <= 12 words"],
  "next7Days": ["array of exactly 3 strings, each starts with a verb, <= 10 words, framed as focus areas, not instructions"],
  "journalPrompt": "string - one simple reflective question",
  "disclaimer": "string - one sentence reminding this is a lens, not a rule, and the user decides what matters"
}"""

# --- Journal Prompts ---

JOURNAL_SYSTEM_PROMPT = """
You are a thoughtful reflection assistant helping someone explore a journal prompt.

Your role is to:
- Provide a gentle, exploratory answer that helps the user think more deeply
- Use simple, clear language
- Avoid being prescriptive or directive
- Normalize their experience and reduce self-judgment
- Keep the tone warm, grounded, and non-mystical
- Frame insights as possibilities, not certainties

Use phrases like:
- "One way to think about this is..."
- "Some people find that..."
- "This might reflect..."
- "You could explore..."

Keep your response to 3-4 short paragraphs maximum.
Be conversational and supportive, not formal or clinical.
"""


@dataclass(frozen=True)
class PromptOptions:
    """Which optional input lines are rendered into a user prompt."""
    include_time: bool = False
    include_focus: bool = False

    @classmethod
    def from_inputs(cls, inputs: UserInput) -> "PromptOptions":
        return cls(include_time=bool(inputs.birth_time), include_focus=bool(inputs.focus_area))


def render_context_lines(inputs: UserInput, options: PromptOptions) -> str:
    """Render the Name/Birth Date/.../Current Focus block."""
    lines = [f"Name: {inputs.name}", f"Birth Date: {inputs.birth_date}"]
    if options.include_time:
        lines.append(f"Birth Time: {inputs.birth_time}")
    lines.append(f"Birth City: {inputs.birth_city}")
    if options.include_focus:
        lines.append(f"Current Focus: {inputs.focus_area}")
    return "\n".join(lines)


def build_reading_system_prompt() -> str:
    return READING_SYSTEM_PROMPT.format(schema_description=READING_SCHEMA_DESCRIPTION).strip()


def build_reading_user_prompt(inputs: UserInput, options: Optional[PromptOptions] = None) -> str:
    options = options or PromptOptions.from_inputs(inputs)
    parts = [
        "Generate a life-pattern insights reading for:",
        render_context_lines(inputs, options),
    ]
    guidance = (
        f"Generate personalized insights that feel specific to {inputs.name}. "
        "Reference their city context lightly (no stereotypes)."
    )
    if options.include_focus:
        guidance += " Pay special attention to their focus area."
    parts.append(guidance)
    parts.append("Remember: Output ONLY valid JSON matching the schema. No markdown fences.")
    return "\n\n".join(parts)


def build_reading_prompts(inputs: UserInput) -> Tuple[str, str]:
    """Return (system instruction, user instruction) for a main reading."""
    return build_reading_system_prompt(), build_reading_user_prompt(inputs)


def build_journal_prompts(journal_prompt: str, inputs: Optional[UserInput] = None) -> Tuple[str, str]:
    """Return (system instruction, user instruction) for a journal-prompt answer."""
    parts = [f'The user is reflecting on this question:\n\n"{journal_prompt}"']
    if inputs is not None:
        parts.append("Context about the user:\n" + render_context_lines(inputs, PromptOptions.from_inputs(inputs)))
    parts.append("Provide a thoughtful, exploratory answer to help them reflect on this question.")
    return JOURNAL_SYSTEM_PROMPT.strip(), "\n\n".join(parts)
