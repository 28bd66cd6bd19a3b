"""
HTTP client for the SERP benchmark, content scoring and suggestion service.

The service is a black box reached through three JSON endpoints. This
module owns the transport: it builds the payloads, sends them with httpx
and turns every kind of failure (network, non-success status, malformed
body) into an OracleError carrying a human-readable message.
"""

import logging
from typing import Any, Optional

import httpx

from .config import WorkflowConfig
from .errors import OracleError
from .models import (
    AnalysisSession,
    ContentAnalysisResponse,
    DocumentState,
    SuggestionBundle,
)

logger = logging.getLogger(__name__)


SERP_ANALYZE_PATH = "/admin/seo/serp/analyze"
CONTENT_ANALYZE_PATH = "/admin/seo/content/analyze"
AI_SUGGEST_PATH = "/admin/seo/ai/suggest"

SITE_HEADER = "X-Site-Id"

# Messages used when the service gives no usable explanation
ANALYSIS_FALLBACK_MESSAGE = "SERP analysis failed"
SCORING_FALLBACK_MESSAGE = "Failed to score content"
SUGGESTION_FALLBACK_MESSAGE = "Could not fetch AI suggestions"


def extract_error_message(response: httpx.Response, fallback: str) -> str:
    """
    Pull the service's error message out of a failed response.

    Looks for a JSON "message" field, then "detail". Falls back to the
    given message when the body has neither.
    """
    try:
        body = response.json()
    except ValueError:
        return fallback

    if isinstance(body, dict):
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return fallback


class OracleClient:
    """
    Async client for the external scoring service.

    One instance is shared by a whole editing session. The site id from the
    config is sent with every request as the X-Site-Id header.
    """

    def __init__(
        self,
        config: Optional[WorkflowConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        headers: Optional[dict] = None,
    ):
        """
        Initialize the oracle client.

        Args:
            config: Workflow configuration (base URL, site id, timeouts).
            http_client: Pre-configured httpx client. Tests pass one built on
                httpx.MockTransport. When omitted a client is created and
                owned by this instance.
            headers: Extra headers sent with every request.
        """
        self.config = config or WorkflowConfig()
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self.config.request_timeout_seconds,
                    connect=self.config.connect_timeout_seconds,
                ),
                follow_redirects=True,
            )
        self._client = http_client
        self._headers = dict(headers or {})
        if self.config.site_id:
            self._headers[SITE_HEADER] = self.config.site_id

    async def __aenter__(self) -> "OracleClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def run_serp_analysis(
        self,
        keyword: str,
        location: str,
        language: str,
        secondary_keywords: list[str],
    ) -> AnalysisSession:
        """
        Benchmark a keyword against the current search results.

        Args:
            keyword: Primary keyword (already validated).
            location: Search location, e.g. "United States".
            language: Search language code, e.g. "en".
            secondary_keywords: Secondary keywords to benchmark as well.

        Returns:
            A fresh AnalysisSession.

        Raises:
            OracleError: If the request fails or the response is malformed.
        """
        payload = {
            "keyword": keyword,
            "location": location,
            "language": language,
            "secondaryKeywords": list(secondary_keywords),
        }
        data = await self._post(SERP_ANALYZE_PATH, payload, ANALYSIS_FALLBACK_MESSAGE)

        analysis = data.get("analysis", data)
        try:
            session = AnalysisSession.from_dict(
                analysis,
                keyword=keyword,
                location=location,
                language=language,
                secondary_keywords=tuple(secondary_keywords),
                cached=bool(data.get("cached", False)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"{ANALYSIS_FALLBACK_MESSAGE}: malformed response ({e})")

        logger.info(
            f"SERP analysis {session.id} ready for '{keyword}' "
            f"({len(session.competitors)} competitors, cached={session.cached})"
        )
        return session

    async def analyze_content(
        self,
        analysis_id: str,
        document: DocumentState,
        base_url: Optional[str] = None,
        blog_post_id: Optional[str] = None,
    ) -> ContentAnalysisResponse:
        """
        Score a document snapshot against an analysis session.

        Args:
            analysis_id: Id of the session to score against.
            document: Document snapshot to score.
            base_url: Site origin, lets the service classify links.
            blog_post_id: Id of the post being edited.

        Returns:
            ContentAnalysisResponse with the breakdown.

        Raises:
            OracleError: If the request fails or the response is malformed.
        """
        payload: dict[str, Any] = {"serpAnalysisId": analysis_id}
        payload.update(document.to_payload())
        if base_url:
            payload["baseUrl"] = base_url
        if blog_post_id:
            payload["blogPostId"] = blog_post_id

        data = await self._post(CONTENT_ANALYZE_PATH, payload, SCORING_FALLBACK_MESSAGE)
        try:
            return ContentAnalysisResponse.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"{SCORING_FALLBACK_MESSAGE}: malformed response ({e})")

    async def ai_suggest(
        self,
        analysis_id: str,
        document: DocumentState,
        missing_terms: list[str],
    ) -> SuggestionBundle:
        """
        Request AI-authored fixes for a document snapshot.

        Args:
            analysis_id: Id of the session the suggestions are scoped to.
            document: Document snapshot the fixes are written for.
            missing_terms: Terms the latest breakdown reported as missing.

        Returns:
            SuggestionBundle with headings, FAQs, paragraphs and terms.

        Raises:
            OracleError: If the request fails or the response is malformed.
        """
        payload = {
            "serpAnalysisId": analysis_id,
            "contentHtml": document.content_html,
            "primaryKeyword": document.primary_keyword,
            "secondaryKeywords": list(document.secondary_keywords),
            "missingTerms": list(missing_terms),
        }
        data = await self._post(AI_SUGGEST_PATH, payload, SUGGESTION_FALLBACK_MESSAGE)
        try:
            return SuggestionBundle.from_dict(data.get("suggestions", data))
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"{SUGGESTION_FALLBACK_MESSAGE}: malformed response ({e})")

    async def _post(self, path: str, payload: dict, fallback: str) -> dict:
        """POST a JSON payload and return the decoded JSON object."""
        url = f"{self.config.api_root}{path}"
        try:
            response = await self._client.post(url, json=payload, headers=self._headers)
        except httpx.TimeoutException:
            raise OracleError(f"{fallback}: request timed out")
        except httpx.HTTPError as e:
            raise OracleError(f"{fallback}: {e}")

        if response.is_error:
            message = extract_error_message(response, fallback)
            logger.warning(f"Oracle call {path} failed with {response.status_code}: {message}")
            raise OracleError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise OracleError(f"{fallback}: response was not valid JSON")

        if not isinstance(data, dict):
            raise OracleError(f"{fallback}: unexpected response shape")
        return data
