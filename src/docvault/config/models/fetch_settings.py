"""Fetch orchestration configuration model.

This module contains the admission, retry and deadline settings used by
the fetch orchestrator.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator, model_validator

from docvault.shared.constants import FetchDefaults

logger = logging.getLogger(__name__)


class FetchSettings(BaseModel):
    """Fetch orchestration configuration.

    The deadline handed to the transport for attempt N is
    ``base_timeout + N * timeout_step``; ``hard_timeout`` caps every
    attempt regardless of that deadline.
    """

    max_concurrent: int = Field(
        default=FetchDefaults.MAX_CONCURRENT,
        gt=0,
        description="Maximum number of concurrent transport calls",
    )
    max_retries: int = Field(
        default=FetchDefaults.MAX_RETRIES,
        ge=0,
        description="Number of retries after the first attempt",
    )
    base_retry_delay: float = Field(
        default=FetchDefaults.BASE_RETRY_DELAY,
        ge=0,
        description="Base delay between retries in seconds",
    )
    base_timeout: float = Field(
        default=FetchDefaults.BASE_TIMEOUT,
        gt=0,
        description="Transport deadline of the first attempt in seconds",
    )
    timeout_step: float = Field(
        default=FetchDefaults.TIMEOUT_STEP,
        ge=0,
        description="Deadline increase per retry in seconds",
    )
    hard_timeout: float = Field(
        default=FetchDefaults.HARD_TIMEOUT,
        gt=0,
        description="Outer cap on a single attempt in seconds",
    )
    locator_template: str = Field(
        default=FetchDefaults.LOCATOR_TEMPLATE,
        description="Template used to build a locator from a key",
    )

    @field_validator("locator_template")
    @classmethod
    def _require_key_placeholder(cls, value: str) -> str:
        if "{key}" not in value:
            msg = "locator_template must contain a '{key}' placeholder"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_hard_timeout(self) -> FetchSettings:
        """Warn when the hard cap cuts the last attempt short of its deadline."""
        last_deadline = self.attempt_deadline(self.max_retries)
        if self.hard_timeout < last_deadline:
            logger.warning(
                "hard_timeout %.1fs is below the %.1fs deadline of the last attempt; "
                "attempts with longer deadlines stop at the hard cap",
                self.hard_timeout,
                last_deadline,
            )
        return self

    def attempt_deadline(self, attempt: int) -> float:
        """Transport deadline for the given zero-based attempt."""
        return self.base_timeout + attempt * self.timeout_step

    def build_locator(self, key: str) -> str:
        return self.locator_template.format(key=key)


__all__ = ["FetchSettings"]
