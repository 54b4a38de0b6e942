import re

import pytest

from cpm.auth.passwords import hash_password, needs_rehash, verify_password


@pytest.mark.parametrize("password", ["hunter2", "", "pässwörd ✓", "a:b:c", " " * 3])
def test_hash_then_verify(password):
    credential = hash_password(password)
    assert verify_password(password, credential)


def test_credential_layout():
    credential = hash_password("secret")
    assert credential.count(":") == 1
    digest, salt = credential.split(":")
    assert re.fullmatch(r"[0-9a-f]{64}", digest)
    assert re.fullmatch(r"[0-9a-f]{32}", salt)


def test_same_password_gets_different_salts():
    a = hash_password("secret")
    b = hash_password("secret")
    assert a != b
    assert verify_password("secret", a)
    assert verify_password("secret", b)


def test_wrong_password_fails():
    assert not verify_password("secret2", hash_password("secret"))


def test_digest_is_sha256_of_password_plus_salt():
    import hashlib

    salt = "00112233445566778899aabbccddeeff"
    digest = hashlib.sha256(("secret" + salt).encode("utf-8")).hexdigest()
    assert verify_password("secret", f"{digest}:{salt}")


@pytest.mark.parametrize(
    "credential",
    [
        "",
        "nocolon",
        ":",
        "abc:",
        ":abc",
        "a:b:c",
        "ä:ö",
        "$argon2id$broken",
        "$argon2id$ä",
        "$argon2id$v=19$m=65536,t=3,p=4$c2FsdA$ñ",
    ],
)
def test_malformed_credentials_fail_closed(credential):
    assert verify_password("secret", credential) is False


def test_argon2_scheme():
    credential = hash_password("secret", scheme="argon2")
    assert credential.startswith("$argon2")
    assert verify_password("secret", credential)
    assert not verify_password("nope", credential)


def test_unknown_scheme_is_programmer_error():
    with pytest.raises(ValueError):
        hash_password("secret", scheme="md5")


def test_needs_rehash_only_upgrades():
    salted = hash_password("secret")
    argon = hash_password("secret", scheme="argon2")
    assert needs_rehash(salted, scheme="argon2")
    assert not needs_rehash(argon, scheme="argon2")
    assert not needs_rehash(salted, scheme="salted-sha256")
    assert not needs_rehash(argon, scheme="salted-sha256")
