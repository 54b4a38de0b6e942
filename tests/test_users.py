import pytest
import yaml

from cpm.auth.passwords import hash_password, verify_password
from cpm.auth.users import UserStore
from cpm.errors import UnknownUserError, UserExistsError

from conftest import PASSWORD


def test_authenticate(user_store):
    u = user_store.authenticate("ANA@example.com ", PASSWORD)
    assert u is not None and u.email == "ana@example.com" and u.is_verified
    assert user_store.authenticate("ana@example.com", "wrong") is None
    assert user_store.authenticate("nobody@example.com", PASSWORD) is None


def test_inactive_users_cannot_authenticate(user_store):
    assert user_store.authenticate("gone@example.com", PASSWORD) is None


def test_file_layout(user_store):
    raw = yaml.safe_load(user_store.path.read_text(encoding="utf-8"))
    assert raw["version"] == 1
    assert raw["users"]["root@example.com"]["role"] == "admin"
    assert raw["users"]["root@example.com"]["password_hash"].count(":") == 1


def test_duplicate_user(user_store):
    with pytest.raises(UserExistsError):
        user_store.create_user("Ana@Example.com", hash_password("x"))


def test_set_password_and_mark_verified(user_store):
    user_store.set_password("root@example.com", hash_password("new-pass"))
    assert user_store.authenticate("root@example.com", "new-pass") is not None
    assert user_store.authenticate("root@example.com", PASSWORD) is None

    u = user_store.mark_verified("root@example.com")
    assert u.is_verified


def test_unknown_user_update(user_store):
    with pytest.raises(UnknownUserError):
        user_store.set_password("nobody@example.com", hash_password("x"))


def test_fresh_store_sees_writes(user_store):
    other = UserStore(user_store.path)
    assert set(other.get_users()) == {"ana@example.com", "root@example.com", "gone@example.com"}
    assert verify_password(PASSWORD, other.get_user("ana@example.com").password_hash)


def test_missing_file_means_no_users(tmp_path):
    assert UserStore(tmp_path / "missing.yml").get_users() == {}


def test_unknown_role_falls_back_to_viewer(tmp_path):
    p = tmp_path / "users.yml"
    p.write_text(yaml.safe_dump({"users": {"x@example.com": {"role": "superuser"}, "bad": "entry"}}), encoding="utf-8")
    users = UserStore(p).get_users()
    assert list(users) == ["x@example.com"]
    assert users["x@example.com"].role == "viewer"
