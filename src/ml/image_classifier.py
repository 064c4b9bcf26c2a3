"""
Image relevance classifier backed by an OpenAI multimodal model.

Asks the model whether a photo matches an issue category and expects a
single-word "true"/"false" reply.
"""

import logging
from typing import Optional

from openai import OpenAI, OpenAIError, RateLimitError

from src.core.config import settings
from src.core.errors import RateLimitExceeded, VerificationError

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    'Please verify if this image matches the category: {category}. '
    'Respond with only "true" if it matches, or "false" if it doesn\'t match.'
)


def parse_verdict(text: Optional[str]) -> bool:
    """True iff the reply is exactly "true" after lower-casing and trimming."""
    if text is None:
        return False
    return text.lower().strip() == "true"


class ImageClassifier:
    """
    Category relevance check for report photos.

    Usage:
        classifier = ImageClassifier(api_key="sk-...")
        verdict = classifier.classify(image_base64, "Pothole")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[OpenAI] = None
    ):
        """
        Initialize classifier.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY setting)
            model: Chat model with vision support
            max_tokens: Reply length cap
            client: Preconfigured OpenAI client
        """
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        self.max_tokens = max_tokens or settings.classifier_max_tokens
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise VerificationError("OPENAI_API_KEY not configured. Set environment variable.")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def classify(self, image_base64: str, category: str) -> bool:
        """
        Ask the model whether the image matches the category.

        Args:
            image_base64: JPEG bytes, base64-encoded
            category: Issue category name

        Returns:
            The model's verdict; anything but "true" counts as False

        Raises:
            RateLimitExceeded: provider throttled the request
            VerificationError: missing credential or any other provider failure
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": PROMPT_TEMPLATE.format(category=category)},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:image/jpeg;base64,{image_base64}"},
                            },
                        ],
                    }
                ],
                max_tokens=self.max_tokens,
            )
        except RateLimitError as e:
            logger.warning(f"Classifier rate limited: {e}")
            raise RateLimitExceeded(str(e)) from e
        except OpenAIError as e:
            logger.error(f"Classifier request failed: {e}")
            raise VerificationError(str(e) or "Failed to verify image") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise VerificationError("Malformed classifier response") from e

        verdict = parse_verdict(content)
        logger.info(f"Classifier verdict for {category!r}: {verdict} (raw={content!r})")
        return verdict
