"""
Interaction Codec
=================
BSON mapping for ``InterceptedInteraction``.

BSON dates are UTC with millisecond precision, so ``createdAt`` is stored
twice: as a BSON date (used for sorting and TTL expiry) and as an ISO-8601
string in ``createdAtZoned`` that keeps the original offset and
microseconds. ``interactionType`` is written through a ``TypeEncoder``.

One ``InteractionCodec`` is built at startup and handed to the repository;
there is no module-level registry to mutate.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from bson.codec_options import CodecOptions, TypeEncoder, TypeRegistry

from .models import InterceptedInteraction, InteractionType

CREATED_AT = "createdAt"
CREATED_AT_ZONED = "createdAtZoned"
TRACE_ID = "traceId"


class InteractionTypeEncoder(TypeEncoder):
    """Stores ``InteractionType`` members by name."""

    @property
    def python_type(self):
        return InteractionType

    def transform_python(self, value: InteractionType) -> str:
        return value.value


def build_codec_options(type_registry: Optional[TypeRegistry] = None) -> CodecOptions:
    """
    Codec options for the interaction collection.

    Args:
        type_registry: Registry to use instead of the default one

    Returns:
        CodecOptions: tz-aware (UTC) options with the interaction encoders
    """
    if type_registry is None:
        type_registry = TypeRegistry([InteractionTypeEncoder()])

    return CodecOptions(
        tz_aware=True,
        tzinfo=timezone.utc,
        type_registry=type_registry
    )


@dataclass(frozen=True)
class InteractionCodec:
    """Immutable document mapping for intercepted interactions."""

    codec_options: CodecOptions = field(default_factory=build_codec_options)

    def to_document(self, interaction: InterceptedInteraction) -> Dict[str, Any]:
        """
        Convert to a document ready for ``insert_one``.

        Args:
            interaction: Record to persist

        Returns:
            Dict: New document; the caller may let the driver add ``_id``
        """
        document = interaction.to_dict()
        created_at: datetime = document[CREATED_AT]

        document[CREATED_AT] = created_at.astimezone(timezone.utc)
        document[CREATED_AT_ZONED] = created_at.isoformat()

        return document

    def from_document(self, document: Mapping[str, Any]) -> InterceptedInteraction:
        """
        Rebuild an interaction from a stored document.

        Raises:
            pydantic.ValidationError: when the document is not a valid record
            TypeError: when ``createdAtZoned`` is not a string
        """
        data = dict(document)
        data.pop("_id", None)

        zoned = data.pop(CREATED_AT_ZONED, None)
        if zoned:
            data[CREATED_AT] = datetime.fromisoformat(zoned)

        return InterceptedInteraction.model_validate(data)
