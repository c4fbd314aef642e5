"""Tests for the message codec."""

from hashlib import md5

import pytest

from tuya_lan_mcp.errors import (
    CodecError,
    CrcError,
    DecryptError,
    EncodeError,
    KeyLengthError,
    ParseError,
    VersionError,
)
from tuya_lan_mcp.models.message import Message, PayloadStruct
from tuya_lan_mcp.protocol.cipher import AESCipher
from tuya_lan_mcp.protocol.codec import DEFAULT_KEY, MessageCodec, ProtocolVersion
from tuya_lan_mcp.protocol.commands import CommandType
from tuya_lan_mcp.protocol.framing import build_frame, parse_frames

KEY = "0123456789abcdef"
REPLY_JSON = b'{"devId":"bf123","dps":{"1":true,"2":25}}'


@pytest.mark.parametrize("version", ["3.1", "3.3"])
def test_create_valid(version):
    """Supported versions with a 16-character key are accepted."""
    codec = MessageCodec.create(version, KEY)
    assert codec.version == ProtocolVersion(version)


def test_create_without_key():
    """Without a key the codec falls back to the default key."""
    codec = MessageCodec.create("3.3", None)
    assert DEFAULT_KEY == md5(b"yGAdlopoPVldABfn").digest()
    frame = codec.encode(Message("x", CommandType.DP_QUERY, 1), True)
    encrypted = parse_frames(frame)[0].payload
    assert AESCipher(DEFAULT_KEY).decrypt(encrypted) == b"x"


@pytest.mark.parametrize("version", ["3.2", "3.4", "", "three"])
def test_create_bad_version(version):
    """Unsupported versions raise VersionError, a CodecError."""
    with pytest.raises(VersionError):
        MessageCodec.create(version, KEY)


@pytest.mark.parametrize("key", ["", "short", "0123456789abcdef0"])
def test_create_bad_key(key):
    """Keys that are not 16 characters raise KeyLengthError."""
    with pytest.raises(KeyLengthError) as info:
        MessageCodec.create("3.3", key)
    assert isinstance(info.value, CodecError)
    assert info.value.length == len(key)


def test_encode_v33_control_has_header():
    """3.3 CONTROL payloads get the version header and AES body."""
    codec = MessageCodec.create("3.3", KEY)
    frame = codec.encode(Message('{"1":true}', CommandType.CONTROL, 5), True)
    parsed = parse_frames(frame)[0]
    assert parsed.seq_nr == 5
    assert parsed.command is CommandType.CONTROL
    assert parsed.payload[:15] == b"3.3" + b"\x00" * 12
    assert AESCipher(KEY.encode()).decrypt(parsed.payload[15:]) == b'{"1":true}'


def test_encode_v33_query_has_no_header():
    """3.3 DP_QUERY payloads are encrypted without the header."""
    codec = MessageCodec.create("3.3", KEY)
    frame = codec.encode(Message('{"1":true}', CommandType.DP_QUERY, 42), True)
    parsed = parse_frames(frame)[0]
    assert not parsed.payload.startswith(b"3.3")
    assert AESCipher(KEY.encode()).decrypt(parsed.payload) == b'{"1":true}'


def test_encode_v31_control_signed():
    """3.1 CONTROL payloads are version + MD5 signature + base64 ciphertext."""
    codec = MessageCodec.create("3.1", KEY)
    frame = codec.encode(Message('{"1":true}', CommandType.CONTROL, 1), True)
    payload = parse_frames(frame)[0].payload
    assert payload.startswith(b"3.1")
    signature, body = payload[3:19], payload[19:]
    expected = md5(b"data=" + body + b"||lpv=3.1||" + KEY.encode()).hexdigest()[8:24]
    assert signature == expected.encode()
    assert AESCipher(KEY.encode()).decrypt(body, use_base64=True) == b'{"1":true}'


def test_encode_v31_query_plaintext():
    """3.1 DP_QUERY payloads are sent as plain JSON."""
    codec = MessageCodec.create("3.1", KEY)
    frame = codec.encode(Message('{"devId":"a"}', CommandType.DP_QUERY, 1), True)
    assert parse_frames(frame)[0].payload == b'{"devId":"a"}'


def test_encode_without_envelope():
    """With encrypt=False the payload is left as plaintext."""
    codec = MessageCodec.create("3.3", KEY)
    frame = codec.encode(Message("plain", CommandType.CONTROL, 1), False)
    assert parse_frames(frame)[0].payload == b"plain"


def test_encode_missing_seq_nr_is_zero():
    """A message without a sequence number is sent with 0."""
    codec = MessageCodec.create("3.3", KEY)
    frame = codec.encode(Message("x", CommandType.CONTROL), True)
    assert parse_frames(frame)[0].seq_nr == 0


def test_encode_requires_command():
    """Messages without a command cannot be encoded."""
    codec = MessageCodec.create("3.3", KEY)
    with pytest.raises(EncodeError):
        codec.encode(Message("x"), True)


def test_encode_seq_nr_out_of_range():
    """Sequence numbers must fit in 32 bits."""
    codec = MessageCodec.create("3.3", KEY)
    with pytest.raises(EncodeError):
        codec.encode(Message("x", CommandType.CONTROL, 2**32), True)


def test_encode_is_deterministic():
    """Encoding the same message twice gives identical bytes."""
    codec = MessageCodec.create("3.3", KEY)
    message = Message('{"1":true}', CommandType.CONTROL, 3)
    assert codec.encode(message, True) == codec.encode(message, True)


def test_parse_v33_device_reply():
    """A device reply with a return code decodes to a structured message."""
    codec = MessageCodec.create("3.3", KEY)
    encrypted = AESCipher(KEY.encode()).encrypt(REPLY_JSON)
    data = build_frame(42, CommandType.DP_QUERY, encrypted, ret_code=0)

    messages = codec.parse(data)
    assert len(messages) == 1
    msg = messages[0]
    assert msg.command is CommandType.DP_QUERY
    assert msg.seq_nr == 42
    assert msg.ret_code == 0
    assert isinstance(msg.payload, PayloadStruct)
    assert msg.payload.dev_id == "bf123"
    assert msg.dps == {"1": True, "2": 25}


def test_parse_v33_headered_payload():
    """A 3.3 payload with the version header is decrypted after the header."""
    codec = MessageCodec.create("3.3", KEY)
    frame = codec.encode(Message(REPLY_JSON.decode(), CommandType.STATUS, 8), True)
    msg = codec.parse(frame)[0]
    assert msg.command is CommandType.STATUS
    assert msg.dps == {"1": True, "2": 25}


def test_parse_v33_empty_reply():
    """A reply holding only a return code decodes to empty text."""
    codec = MessageCodec.create("3.3", KEY)
    msg = codec.parse(build_frame(1, CommandType.CONTROL, b"", ret_code=0))[0]
    assert msg.payload == ""
    assert msg.ret_code == 0


def test_parse_v31_plain_reply():
    """3.1 devices answer queries in plaintext."""
    codec = MessageCodec.create("3.1", KEY)
    msg = codec.parse(build_frame(2, CommandType.DP_QUERY, REPLY_JSON, ret_code=0))[0]
    assert msg.dps == {"1": True, "2": 25}


def test_parse_v31_encrypted_reply():
    """3.1 status pushes are signed and base64 encrypted like requests."""
    codec = MessageCodec.create("3.1", KEY)
    frame = codec.encode(Message(REPLY_JSON.decode(), CommandType.CONTROL, 3), True)
    assert codec.parse(frame)[0].dps == {"1": True, "2": 25}


def test_parse_multiple_messages_in_order():
    """Several frames in one buffer decode in order."""
    codec = MessageCodec.create("3.3", KEY)
    cipher = AESCipher(KEY.encode())
    data = build_frame(1, CommandType.CONTROL, b"", ret_code=0) + build_frame(
        2, CommandType.STATUS, cipher.encrypt(REPLY_JSON), ret_code=0
    )
    messages = codec.parse(data)
    assert [m.seq_nr for m in messages] == [1, 2]
    assert messages[1].dps == {"1": True, "2": 25}


def test_parse_is_repeatable():
    """Parsing the same buffer twice yields equal messages."""
    codec = MessageCodec.create("3.3", KEY)
    data = build_frame(9, CommandType.DP_QUERY, AESCipher(KEY.encode()).encrypt(REPLY_JSON))
    assert codec.parse(data) == codec.parse(data)


def test_parse_garbage():
    """Bytes that are not a frame raise ParseError."""
    codec = MessageCodec.create("3.3", KEY)
    with pytest.raises(ParseError):
        codec.parse(b"hello world, not a frame")


def test_parse_bad_crc():
    """Corrupted frames raise CrcError."""
    codec = MessageCodec.create("3.3", KEY)
    data = bytearray(build_frame(1, CommandType.DP_QUERY, b"\x00" * 16))
    data[-8] ^= 0x01
    with pytest.raises(CrcError):
        codec.parse(bytes(data))


def test_parse_undecryptable_payload():
    """A 3.3 payload that is not whole AES blocks raises DecryptError."""
    codec = MessageCodec.create("3.3", KEY)
    with pytest.raises(DecryptError):
        codec.parse(build_frame(1, CommandType.DP_QUERY, b"abc", ret_code=0))


def test_parse_keeps_raw_payload():
    """Decoded messages keep the payload bytes as they came off the wire."""
    codec = MessageCodec.create("3.3", KEY)
    encrypted = AESCipher(KEY.encode()).encrypt(REPLY_JSON)
    msg = codec.parse(build_frame(4, CommandType.STATUS, encrypted, ret_code=0))[0]
    assert msg.raw == encrypted
