"""Image capability: generates an image and a friendly confirmation together."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from toolplan.exceptions import ImageGenerationError, RunCancelledError
from toolplan.llm.protocols import SamplingOptions
from toolplan.prompts.plugins import IMAGE_CONFIRMATION_SYSTEM
from toolplan.toolkit.models import Capability, Parameter
from toolplan.trace import Message

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import ChatService, ImageService

logger = logging.getLogger(__name__)

IMAGE_WIDTH = 1024
IMAGE_HEIGHT = 1024

CONFIRMATION_OPTIONS = SamplingOptions(max_tokens=50, temperature=1.0, top_p=1.0)


class ImagePlugin:
    """Creates an image from a text description."""

    def __init__(self, chat: ChatService, images: ImageService) -> None:
        self._chat = chat
        self._images = images

    async def create_image_from_text(
        self, description: str, cancel: CancellationToken | None = None
    ) -> str:
        """Request the image and the confirmation concurrently.

        Both branches always run to completion before anything is returned
        or raised. There is no partial result.

        Raises:
            ImageGenerationError: The image branch failed, whatever happened
                to the confirmation.
        """
        image_task = self._images.generate(
            description, IMAGE_WIDTH, IMAGE_HEIGHT, cancel=cancel
        )
        message_task = self._chat.complete(
            [Message.system(IMAGE_CONFIRMATION_SYSTEM.format(description=description))],
            options=CONFIRMATION_OPTIONS,
            cancel=cancel,
        )
        url, confirmation = await asyncio.gather(
            image_task, message_task, return_exceptions=True
        )

        if isinstance(url, BaseException):
            if isinstance(url, (ImageGenerationError, RunCancelledError)) or not isinstance(
                url, Exception
            ):
                raise url
            raise ImageGenerationError(f"Image generation failed: {url}") from url
        if isinstance(confirmation, BaseException):
            raise confirmation

        logger.debug("Image ready at %s", url)
        return f"{confirmation.content or ''} \n\n URL: {url}"

    def capability(self) -> Capability:
        return Capability(
            name="create_image_from_text",
            description="Creates an image from a text description.",
            parameters=(
                Parameter("description", "string", "What the image should show."),
            ),
            handler=self.create_image_from_text,
        )
