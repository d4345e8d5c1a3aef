import warnings

import pytest

from services.cipher import (
    ALGORITHMS,
    BlockCipher,
    DecryptionError,
    EncryptionDisabled,
    EncryptionEnabled,
    UnsupportedAlgorithmError,
    build_cipher,
    get_cipher_algorithm,
    parse_setting,
)


def test_none_has_no_cipher():
    assert get_cipher_algorithm("none") is None
    assert get_cipher_algorithm("NONE") is None
    assert build_cipher(EncryptionDisabled()) is None


def test_unknown_algorithm_rejected():
    with pytest.raises(UnsupportedAlgorithmError) as exc:
        get_cipher_algorithm("rot13")
    assert "rot13" in str(exc.value)


@pytest.mark.parametrize("name", ["aes", "blowfish"])
def test_encrypt_decrypt(name):
    cipher = BlockCipher(ALGORITHMS[name], "k1")
    encrypted = cipher.encrypt("secretpass")
    assert encrypted != "secretpass"
    assert cipher.decrypt(encrypted) == "secretpass"


def test_ciphertext_is_salted():
    cipher = BlockCipher(ALGORITHMS["aes"], "k1")
    assert cipher.encrypt("secretpass") != cipher.encrypt("secretpass")


def test_wrong_key_fails():
    encrypted = BlockCipher(ALGORITHMS["aes"], "k1").encrypt("secretpass")
    with pytest.raises(DecryptionError):
        BlockCipher(ALGORITHMS["aes"], "k2").decrypt(encrypted)


def test_wrong_algorithm_fails():
    # camellia and aes share key and block sizes, only the name differs
    encrypted = BlockCipher(ALGORITHMS["camellia"], "k1").encrypt("secretpass")
    with pytest.raises(DecryptionError):
        BlockCipher(ALGORITHMS["aes"], "k1").decrypt(encrypted)


@pytest.mark.parametrize("value", ["", "abc", "0" * 64 + "not base64!", "0" * 64 + "AAAA"])
def test_malformed_values_fail(value):
    with pytest.raises(DecryptionError):
        BlockCipher(ALGORITHMS["aes"], "k1").decrypt(value)


def test_tampered_value_fails():
    encrypted = BlockCipher(ALGORITHMS["aes"], "k1").encrypt("secretpass")
    tampered = encrypted[:-4] + ("AAAA" if encrypted[-4:] != "AAAA" else "BBBB")
    with pytest.raises(DecryptionError):
        BlockCipher(ALGORITHMS["aes"], "k1").decrypt(tampered)


def test_parse_setting():
    assert parse_setting("none", None) == EncryptionDisabled()
    assert parse_setting("AES", "k1") == EncryptionEnabled(algorithm="aes", key="k1")
    with pytest.raises(ValueError):
        parse_setting("aes", None)


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        BlockCipher(ALGORITHMS["aes"], "")


def test_legacy_ciphers_do_not_warn():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        for name in ("blowfish", "camellia"):
            cipher = BlockCipher(ALGORITHMS[name], "k1")
            assert cipher.decrypt(cipher.encrypt("secretpass")) == "secretpass"
