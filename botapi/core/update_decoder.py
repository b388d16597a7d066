"""Decodes raw update envelopes into ``UpdateExt`` variants.

Shared by the long poller and the webhook listener. Decoding is a pure
function of the envelope: the same input always yields an equal variant.
"""

import json
import logging
from typing import Any, List, Mapping, Optional, Union

from botapi.domain.exceptions import DecodeError, UpdateDecodeError
from botapi.domain.models.updates import UPDATE_VARIANTS, InvalidUpdate, UpdateExt

logger = logging.getLogger(__name__)


def read_update_id(raw: Any) -> Optional[int]:
    """Returns the envelope's update_id, or None if it is missing or not an integer."""
    if not isinstance(raw, Mapping):
        return None
    update_id = raw.get("update_id")
    if isinstance(update_id, bool) or not isinstance(update_id, int):
        return None
    return update_id


def decode_update(raw: Any) -> UpdateExt:
    """Decodes one update envelope.

    Envelopes with a valid id but no recognised payload, several payloads, or
    a payload that does not match its type become ``InvalidUpdate`` so the
    event is still delivered and its id still advances the cursor.

    Raises:
        UpdateDecodeError: If ``raw`` is not an object or has no integer update_id.
    """
    if not isinstance(raw, Mapping):
        raise UpdateDecodeError(f"Update must be a JSON object, got {type(raw).__name__}", raw=raw)

    update_id = read_update_id(raw)
    if update_id is None:
        raise UpdateDecodeError("Update has no integer 'update_id'", raw=raw)

    present: List[type] = [variant for variant in UPDATE_VARIANTS if raw.get(variant.kind) is not None]
    if not present:
        return InvalidUpdate(update_id=update_id, raw=dict(raw), reason="no recognised payload")
    if len(present) > 1:
        kinds = ", ".join(variant.kind for variant in present)
        return InvalidUpdate(update_id=update_id, raw=dict(raw), reason=f"multiple payloads: {kinds}")

    variant = present[0]
    try:
        payload = variant.payload_type.from_dict(raw[variant.kind], _where=variant.kind)
    except DecodeError as e:
        logger.debug(f"Payload of update {update_id} failed to decode: {e}")
        return InvalidUpdate(update_id=update_id, raw=dict(raw), reason=str(e))
    return variant(update_id, payload)


def decode_update_body(body: Union[bytes, str]) -> UpdateExt:
    """Parses a JSON request body and decodes it as one update.

    Raises:
        UpdateDecodeError: If the body is not valid JSON or not a valid envelope.
    """
    try:
        raw = json.loads(body)
    except (TypeError, ValueError) as e:
        raise UpdateDecodeError(f"Update body is not valid JSON: {e}", raw=body) from e
    return decode_update(raw)
