import copy
import json
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from xumm_relay.exceptions import TransactionValidationError
from xumm_relay.signing.models import TRANSACTION_TYPE_FIELD, SigningOptions, SubmissionRequest

DocumentInput = Union[str, bytes, Mapping[str, Any]]


def parse_document(document: DocumentInput) -> dict[str, Any]:
    """Parse a transaction document from JSON text or copy it from a mapping."""
    if isinstance(document, (str, bytes)):
        try:
            parsed = json.loads(document)
        except json.JSONDecodeError as e:
            raise TransactionValidationError(f"Invalid JSON: {e.msg}")
        except UnicodeDecodeError as e:
            raise TransactionValidationError(f"Invalid JSON: {e.reason}")
    else:
        parsed = document

    if not isinstance(parsed, Mapping):
        raise TransactionValidationError("Invalid JSON: transaction document must be an object")
    # The caller keeps ownership of its document
    return copy.deepcopy(dict(parsed))


def build_submission(
    document: DocumentInput,
    options: Optional[Union[SigningOptions, Mapping[str, Any]]] = None,
) -> SubmissionRequest:
    """Validate a transaction document and assemble the payload creation request.

    Pure: no service is contacted.

    Args:
        document: The transaction as JSON text or a mapping.
        options: Signing options; defaults to auto-submit with a 5 minute expiry.

    Returns:
        The SubmissionRequest to send to the payload creation service.

    Raises:
        TransactionValidationError: If the document is not a JSON object, lacks a
            non-empty TransactionType, or the options are out of range.
    """
    txjson = parse_document(document)

    transaction_type = txjson.get(TRANSACTION_TYPE_FIELD)
    if not isinstance(transaction_type, str) or not transaction_type.strip():
        raise TransactionValidationError("missing transaction type")

    if options is None:
        options = SigningOptions()
    elif not isinstance(options, SigningOptions):
        try:
            options = SigningOptions.model_validate(dict(options))
        except ValidationError as e:
            raise TransactionValidationError(f"Invalid signing options: {e.errors()[0]['msg']}")

    return SubmissionRequest(txjson=txjson, options=options)
