"""
Prompt templates for the tutor model.
Provides parameterized prompts with validation.
"""
import re
from dataclasses import dataclass, field

# Literal tags the analyzer is told to put in front of each section
GRAMMAR_MARKER = "[grammar]"
PHRASES_MARKER = "[phrases]"
TIP_MARKER = "[tip]"


@dataclass
class PromptTemplate:
    """A parameterized prompt template using ``{variable}`` placeholders."""

    name: str
    template: str
    description: str = ""
    required: list[str] = field(default_factory=list)

    def get_variable_names(self) -> list[str]:
        """Get names of all variables in template."""
        pattern = r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}"
        return sorted(set(re.findall(pattern, self.template)) | set(self.required))

    def render(self, **kwargs) -> str:
        """
        Render the template with provided values.

        Raises:
            ValueError: If required variables are missing.
        """
        missing = [name for name in self.get_variable_names() if name not in kwargs]
        if missing:
            raise ValueError(f"Template validation failed: missing {', '.join(missing)}")
        return self.template.format(**kwargs)

    def __call__(self, **kwargs) -> str:
        """Allow calling template directly."""
        return self.render(**kwargs)


SYSTEM_ANALYZER = PromptTemplate(
    name="system_analyzer",
    description="Sentence analysis with marker-delimited sections",
    template=(
        "You are an expert English tutor. Analyze the sentence structure and vocabulary.\n"
        "Structure your response using these exact markers:\n"
        f"{GRAMMAR_MARKER} - Grammar analysis in Chinese\n"
        f"{PHRASES_MARKER} - Key phrases, comma separated\n"
        f"{TIP_MARKER} - Mnemonic tip in Chinese"
    ),
)

USER_ANALYZER = PromptTemplate(
    name="user_analyzer",
    template='Analyze: "{text}"',
)

SYSTEM_CHAT = PromptTemplate(
    name="system_chat",
    description="Follow-up questions about a selected text",
    template=(
        'You are an expert English tutor. The user is asking about this specific text: "{context}".\n'
        "Provide a helpful, professional, and concise answer in Chinese.\n"
        "Focus on linguistic nuances, alternative usages, or clarifying confusion."
    ),
)
