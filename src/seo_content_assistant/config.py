# -*- coding: utf-8 -*-
"""
Centralized configuration for the SEO content assistant.

This module provides a unified configuration dataclass that controls the
oracle transport, the editing-session context (site and post), the
rescore debounce delay, and the limits used when applying AI fixes.
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_API_BASE = "http://localhost:5050/api"
DEFAULT_LOCATION = "United States"
DEFAULT_LANGUAGE = "en"

# Delay between the last edit and the automatic rescore (seconds)
DEFAULT_RESCORE_DELAY = 0.9


@dataclass
class WorkflowConfig:
    """
    Central configuration for one editing session.

    Attributes:
        api_base_url: Base URL of the scoring/suggestion service. The three
            endpoints are resolved under it.
        site_id: Active site identifier, sent as the X-Site-Id header.
            None means no site header is sent.
        post_id: Identifier of the post being edited. Forwarded to the
            content scoring call as blogPostId when set.
        base_url: Public origin of the site, forwarded to content scoring
            so the oracle can tell internal links from external ones.

        default_location: Location used when a run analysis request has a
            blank location.
        default_language: Language used when a run analysis request has a
            blank language.

        rescore_delay_seconds: Trailing-edge debounce delay before an
            automatic rescore fires.
        request_timeout_seconds: Overall timeout for oracle requests.
        connect_timeout_seconds: Connect timeout for oracle requests.

        Fix Application Limits:
            max_guidance_terms: Terms listed in the keyword guidance line.
            max_headings: Heading suggestions inserted.
            max_paragraphs: Paragraph suggestions inserted.
            max_faqs: FAQ questions inserted.
            max_missing_terms: Terms listed in the missing-terms callout.
            max_top_terms: Benchmark top terms considered for metadata.
            max_description_terms: Terms woven into a regenerated meta
                description.
            meta_description_min_length: Descriptions shorter than this are
                regenerated.
            meta_description_max_length: Regenerated descriptions are cut to
                this many characters.
    """

    # Oracle transport
    api_base_url: str = DEFAULT_API_BASE
    request_timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 30.0

    # Editing session context
    site_id: Optional[str] = None
    post_id: Optional[str] = None
    base_url: Optional[str] = None

    # Analysis defaults
    default_location: str = DEFAULT_LOCATION
    default_language: str = DEFAULT_LANGUAGE

    # Rescore debounce
    rescore_delay_seconds: float = DEFAULT_RESCORE_DELAY

    # Fix application limits
    max_guidance_terms: int = 4
    max_headings: int = 3
    max_paragraphs: int = 3
    max_faqs: int = 4
    max_missing_terms: int = 8
    max_top_terms: int = 3
    max_description_terms: int = 3
    meta_description_min_length: int = 110
    meta_description_max_length: int = 165

    def __post_init__(self):
        """Validate configuration values."""
        if not self.api_base_url or not self.api_base_url.strip():
            raise ValueError("api_base_url must not be empty")
        if self.rescore_delay_seconds <= 0:
            raise ValueError(
                f"rescore_delay_seconds must be > 0, got {self.rescore_delay_seconds}"
            )
        if self.request_timeout_seconds <= 0:
            raise ValueError(
                f"request_timeout_seconds must be > 0, got {self.request_timeout_seconds}"
            )
        if self.connect_timeout_seconds <= 0:
            raise ValueError(
                f"connect_timeout_seconds must be > 0, got {self.connect_timeout_seconds}"
            )
        for name in (
            "max_guidance_terms",
            "max_headings",
            "max_paragraphs",
            "max_faqs",
            "max_missing_terms",
            "max_top_terms",
            "max_description_terms",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.meta_description_max_length < 1:
            raise ValueError(
                f"meta_description_max_length must be >= 1, "
                f"got {self.meta_description_max_length}"
            )
        if self.meta_description_min_length >= self.meta_description_max_length:
            raise ValueError(
                f"meta_description_min_length ({self.meta_description_min_length}) must be < "
                f"meta_description_max_length ({self.meta_description_max_length})"
            )

    @property
    def api_root(self) -> str:
        """Base URL without a trailing slash."""
        return self.api_base_url.rstrip("/")

    @classmethod
    def from_env(cls, **overrides) -> "WorkflowConfig":
        """Create config from SEO_ASSISTANT_* environment variables.

        Reads SEO_ASSISTANT_API_BASE, SEO_ASSISTANT_SITE_ID,
        SEO_ASSISTANT_RESCORE_DELAY and SEO_ASSISTANT_TIMEOUT. Explicit
        overrides win over the environment; overrides
        set to None are ignored.

        Args:
            **overrides: Override any config values (e.g., post_id='p1')

        Returns:
            WorkflowConfig built from the environment.
        """
        defaults = {}

        api_base = os.environ.get("SEO_ASSISTANT_API_BASE")
        if api_base:
            defaults["api_base_url"] = api_base

        site_id = os.environ.get("SEO_ASSISTANT_SITE_ID")
        if site_id:
            defaults["site_id"] = site_id

        delay = os.environ.get("SEO_ASSISTANT_RESCORE_DELAY")
        if delay:
            try:
                defaults["rescore_delay_seconds"] = float(delay)
            except ValueError:
                raise ValueError(
                    f"SEO_ASSISTANT_RESCORE_DELAY must be a number, got '{delay}'"
                )

        timeout = os.environ.get("SEO_ASSISTANT_TIMEOUT")
        if timeout:
            try:
                defaults["request_timeout_seconds"] = float(timeout)
            except ValueError:
                raise ValueError(
                    f"SEO_ASSISTANT_TIMEOUT must be a number, got '{timeout}'"
                )

        defaults.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**defaults)
