"""
Command Codec
=============

Bounded Context: Payload Encoding

Bidirectional mapping between the two message schemas and their wire bytes.

Design:
- Compact JSON, UTF-8, fixed key order taken from to_dict()
- Output bounded by max_payload_size: oversize payloads are rejected,
  never truncated
- Every decode failure surfaces as DecodeError, whatever the input bytes

Example:
    >>> codec = CommandCodec(max_payload_size=512)
    >>> codec.encode_command(CommandMessage("btnNode07", LedState.ON))
    b'{"senderID":"btnNode07","cmd":"on"}'
"""

import json
from typing import Any, Dict, Union

from .errors import DecodeError, PayloadTooLargeError
from .schemas import CommandMessage, StatusMessage

DEFAULT_MAX_PAYLOAD_SIZE = 512

_SEPARATORS = (',', ':')


class CommandCodec:
    """
    Encoder/decoder for CommandMessage and StatusMessage payloads.

    Attributes:
        max_payload_size: Largest encoded payload accepted, in bytes
    """

    def __init__(self, max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE):
        if max_payload_size <= 0:
            raise ValueError(
                f"max_payload_size must be > 0, got {max_payload_size}"
            )
        self.max_payload_size = max_payload_size

    # ===== Encoding =====

    def encode_command(self, msg: CommandMessage) -> bytes:
        """
        Encode a command.

        Raises:
            PayloadTooLargeError: If the encoded bytes exceed max_payload_size
        """
        return self._encode(msg.to_dict())

    def encode_status(self, msg: StatusMessage) -> bytes:
        """
        Encode a status report.

        Raises:
            PayloadTooLargeError: If the encoded bytes exceed max_payload_size
        """
        return self._encode(msg.to_dict())

    def _encode(self, data: Dict[str, Any]) -> bytes:
        payload = json.dumps(data, separators=_SEPARATORS, ensure_ascii=False).encode('utf-8')
        if len(payload) > self.max_payload_size:
            raise PayloadTooLargeError(len(payload), self.max_payload_size)
        return payload

    # ===== Decoding =====

    def decode_command(self, data: Union[bytes, bytearray]) -> CommandMessage:
        """
        Decode a command payload.

        Raises:
            DecodeError: Malformed JSON or schema violation
        """
        return CommandMessage.from_dict(self._decode(data))

    def decode_status(self, data: Union[bytes, bytearray]) -> StatusMessage:
        """
        Decode a status payload.

        Raises:
            DecodeError: Malformed JSON or schema violation
        """
        return StatusMessage.from_dict(self._decode(data))

    def _decode(self, data: Union[bytes, bytearray]) -> Dict[str, Any]:
        if not isinstance(data, (bytes, bytearray)):
            raise DecodeError(f"Payload must be bytes, got {type(data).__name__}")

        try:
            text = bytes(data).decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"Payload is not valid UTF-8: {e}") from e

        try:
            obj = json.loads(text)
        except RecursionError as e:
            raise DecodeError("Payload nesting too deep") from e
        except ValueError as e:
            # JSONDecodeError, or an integer literal past the int digit limit
            raise DecodeError(f"Payload is not valid JSON: {e}") from e

        if not isinstance(obj, dict):
            raise DecodeError(
                f"Payload must be a JSON object, got {type(obj).__name__}"
            )
        return obj
