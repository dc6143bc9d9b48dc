import hashlib

from apps.payments.signature import build_parameter_string, encode_value, generate_signature, verify_signature

PAYLOAD = [
    ("merchant_id", "10000100"),
    ("merchant_key", "46f0cd694581a"),
    ("return_url", "https://example.com/return?m_payment_id=ENTRY_1"),
    ("name_first", "Thandi"),
    ("name_last", ""),
    ("email_address", "thandi+pay@example.com"),
    ("m_payment_id", "ENTRY_1_abc"),
    ("amount", "12.00"),
    ("item_name", "Swan Song (Solo)"),
]


def test_encode_value_matches_encode_uri_component():
    assert encode_value("Swan Song") == "Swan+Song"
    assert encode_value("a+b@c.com") == "a%2Bb%40c.com"
    assert encode_value("it's (ok)!*~") == "it's+(ok)!*~"
    assert encode_value("  padded  ") == "padded"
    assert encode_value("Café") == "Caf%C3%A9"


def test_parameter_string_keeps_order_and_skips_empty_values():
    result = build_parameter_string(PAYLOAD[:5] + [("signature", "abc")], passphrase="jt7NOE43FZPn")
    assert result == (
        "merchant_id=10000100&merchant_key=46f0cd694581a"
        "&return_url=https%3A%2F%2Fexample.com%2Freturn%3Fm_payment_id%3DENTRY_1"
        "&name_first=Thandi&passphrase=jt7NOE43FZPn"
    )


def test_signature_is_md5_of_parameter_string():
    expected = hashlib.md5(build_parameter_string(PAYLOAD, "secret").encode()).hexdigest()
    assert generate_signature(PAYLOAD, "secret") == expected
    assert generate_signature(dict(PAYLOAD), "secret") == expected


def test_field_order_changes_the_signature():
    assert generate_signature(PAYLOAD) != generate_signature(list(reversed(PAYLOAD)))


def test_round_trip_and_tamper_detection():
    signed = PAYLOAD + [("signature", generate_signature(PAYLOAD, "secret"))]
    assert verify_signature(signed, "secret")
    assert not verify_signature(signed, "other-secret")

    for index in range(len(PAYLOAD)):
        key, value = signed[index]
        tampered = list(signed)
        tampered[index] = (key, value + "x")
        assert not verify_signature(tampered, "secret"), key


def test_missing_or_garbage_signature_is_rejected():
    assert not verify_signature(PAYLOAD, "secret")
    assert not verify_signature(PAYLOAD + [("signature", "ünïcode")], "secret")
