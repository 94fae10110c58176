"""
Interaction Factory
===================
Assembles ``InterceptedInteraction`` records from captured traffic,
stamping the capture time and the deployment profile.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, List, Union, Callable, Mapping, Iterable

from .database.models import InterceptedInteraction, InteractionType

HeaderValues = Union[str, Iterable[str]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalise_headers(headers: Optional[Mapping[str, HeaderValues]]) -> Dict[str, List[str]]:
    """
    Turn single-valued headers into lists.

    Examples:
        >>> normalise_headers({"Accept": "text/plain", "X-Ids": ["1", "2"]})
        {'Accept': ['text/plain'], 'X-Ids': ['1', '2']}
    """
    if not headers:
        return {}

    return {
        name: [values] if isinstance(values, str) else list(values)
        for name, values in headers.items()
    }


class InterceptedInteractionFactory:
    """Builds interactions for one deployment profile."""

    def __init__(self, profile: str = "", clock: Callable[[], datetime] = _utc_now):
        """
        Args:
            profile: Interaction naming/grouping profile
            clock: Returns the capture time; must be timezone-aware
        """
        self.profile = profile
        self._clock = clock

    def build(
        self,
        trace_id: str,
        interaction_type: Union[InteractionType, str],
        *,
        body: Optional[str] = None,
        request_headers: Optional[Mapping[str, HeaderValues]] = None,
        response_headers: Optional[Mapping[str, HeaderValues]] = None,
        service_name: Optional[str] = None,
        target: Optional[str] = None,
        path: Optional[str] = None,
        http_status: Optional[str] = None,
        http_method: Optional[str] = None,
        elapsed_time: int = 0,
    ) -> InterceptedInteraction:
        return InterceptedInteraction(
            trace_id=trace_id,
            created_at=self._clock(),
            interaction_type=interaction_type,
            body=body,
            request_headers=normalise_headers(request_headers),
            response_headers=normalise_headers(response_headers),
            service_name=service_name,
            target=target,
            path=path,
            http_status=http_status,
            http_method=http_method,
            profile=self.profile,
            elapsed_time=elapsed_time,
        )
