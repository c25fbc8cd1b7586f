"""
Prompt builder for sentiment requests.

Renders the single-turn instruction prompt with Jinja2. The comment text is
embedded verbatim (no escaping, no truncation).
"""

from typing import Optional

import structlog
from jinja2 import Environment, StrictUndefined

from sentiment_wizard.models.llm_models import LLMGenerationRequest


logger = structlog.get_logger(__name__)


SENTIMENT_PROMPT_TEMPLATE = """\
You are analyzing feedback. Respond with ONLY one word: positive, negative, mixed, or neutral.
{% if context %}
Additional context: {{ context }}
{% endif %}
Comment: "{{ comment }}"
Sentiment:"""


class PromptBuilder:
    """
    Build generation requests for one comment at a time.
    
    Handles:
    - Template rendering (Jinja2)
    - Optional free-text context supplied by the user
    """
    
    def __init__(self, template: str = SENTIMENT_PROMPT_TEMPLATE):
        self.jinja_env = Environment(
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            undefined=StrictUndefined,
            autoescape=False  # We're generating prompts, not HTML
        )
        self.template = self.jinja_env.from_string(template)
    
    def build_prompt(self, comment: str, extra_context: Optional[str] = None) -> str:
        """
        Render the prompt for one comment.
        
        Args:
            comment: Raw comment text, embedded as-is
            extra_context: Optional user context; blank context is omitted
        """
        context = (extra_context or "").strip()
        return self.template.render(comment=comment, context=context)
    
    def build_request(
        self,
        comment: str,
        model: str,
        extra_context: Optional[str] = None,
    ) -> LLMGenerationRequest:
        """Build a non-streamed generation request for one comment."""
        return LLMGenerationRequest(
            prompt=self.build_prompt(comment, extra_context),
            model=model,
            stream=False,
        )
