"""
Server List Ping codec.

Encodes the handshake and status-request packets and decodes the JSON
status response of the Minecraft status protocol.
"""

import asyncio
import json
import struct
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ProtocolError

# Any protocol version is accepted for a status query
ANY_PROTOCOL_VERSION = -1
NEXT_STATE_STATUS = 1
STATUS_PACKET_ID = 0x00
MAX_VARINT_BYTES = 5
MAX_FRAME_BYTES = 1 << 20


@dataclass
class StatusReply:
    """Decoded status response."""
    online_players: int
    max_players: int
    version_name: str = ""
    protocol: Optional[int] = None
    description: str = ""
    raw: dict = field(default_factory=dict)


def encode_varint(value: int) -> bytes:
    """Encode a 32-bit signed integer as a VarInt."""
    if not -(1 << 31) <= value < (1 << 31):
        raise ValueError(f"{value} does not fit in a VarInt")
    value &= 0xFFFFFFFF
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _to_signed(value: int) -> int:
    return value - (1 << 32) if value & (1 << 31) else value


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a VarInt from a buffer. Returns (value, next offset)."""
    result = 0
    for i in range(MAX_VARINT_BYTES):
        if offset + i >= len(data):
            raise ProtocolError("truncated VarInt")
        byte = data[offset + i]
        result |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return _to_signed(result), offset + i + 1
    raise ProtocolError("VarInt is too long")


async def read_varint(reader: asyncio.StreamReader) -> int:
    """Read a VarInt from a stream."""
    result = 0
    for i in range(MAX_VARINT_BYTES):
        try:
            byte = (await reader.readexactly(1))[0]
        except asyncio.IncompleteReadError as e:
            raise ProtocolError("connection closed inside a VarInt") from e
        result |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return _to_signed(result)
    raise ProtocolError("VarInt is too long")


def encode_string(value: str) -> bytes:
    """Encode a length-prefixed UTF-8 string."""
    data = value.encode("utf-8")
    return encode_varint(len(data)) + data


def decode_string(data: bytes, offset: int = 0) -> tuple[str, int]:
    """Decode a length-prefixed UTF-8 string. Returns (value, next offset)."""
    length, offset = decode_varint(data, offset)
    if length < 0 or offset + length > len(data):
        raise ProtocolError("string length exceeds packet")
    try:
        value = data[offset:offset + length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"string is not UTF-8: {e}") from e
    return value, offset + length


def pack_packet(packet_id: int, payload: bytes = b"") -> bytes:
    """Frame a packet: VarInt length, VarInt id, payload."""
    body = encode_varint(packet_id) + payload
    return encode_varint(len(body)) + body


def handshake_packet(host: str, port: int, protocol_version: int = ANY_PROTOCOL_VERSION) -> bytes:
    """Handshake switching the connection into the status state."""
    payload = (
        encode_varint(protocol_version)
        + encode_string(host)
        + struct.pack(">H", port)
        + encode_varint(NEXT_STATE_STATUS)
    )
    return pack_packet(STATUS_PACKET_ID, payload)


def status_request_packet() -> bytes:
    return pack_packet(STATUS_PACKET_ID)


async def read_packet(reader: asyncio.StreamReader, max_size: int = MAX_FRAME_BYTES) -> tuple[int, bytes]:
    """Read one framed packet. Returns (packet id, payload)."""
    length = await read_varint(reader)
    if length <= 0 or length > max_size:
        raise ProtocolError(f"invalid frame length {length}")
    try:
        frame = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError(f"frame truncated after {len(e.partial)} of {length} bytes") from e
    packet_id, offset = decode_varint(frame)
    return packet_id, frame[offset:]


def _flatten_chat(component: Any) -> str:
    """Flatten a chat component into plain text."""
    if isinstance(component, str):
        return component
    if isinstance(component, list):
        return "".join(_flatten_chat(c) for c in component)
    if isinstance(component, dict):
        text = str(component.get("text", ""))
        return text + "".join(_flatten_chat(c) for c in component.get("extra", []))
    return ""


def parse_status(document: str) -> StatusReply:
    """Decode the JSON status document."""
    try:
        data = json.loads(document)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"status response is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError("status response is not a JSON object")

    players = data.get("players")
    if not isinstance(players, dict):
        raise ProtocolError("status response has no players section")

    try:
        online = int(players["online"])
        maximum = int(players["max"])
    except (KeyError, TypeError, ValueError) as e:
        raise ProtocolError(f"invalid player counts: {e}") from e

    version = data.get("version") if isinstance(data.get("version"), dict) else {}
    protocol = version.get("protocol")

    return StatusReply(
        online_players=online,
        max_players=maximum,
        version_name=str(version.get("name", "")),
        protocol=protocol if isinstance(protocol, int) else None,
        description=_flatten_chat(data.get("description", "")),
        raw=data,
    )


def parse_status_packet(packet_id: int, payload: bytes) -> StatusReply:
    """Decode a status response packet."""
    if packet_id != STATUS_PACKET_ID:
        raise ProtocolError(f"unexpected packet id {packet_id:#x}")
    document, _ = decode_string(payload)
    return parse_status(document)
