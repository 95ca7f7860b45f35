"""Tests for app.services.users: role validation and CRUD against an in-memory SQLite store."""

import unittest
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from app.core.errors import ConflictError, NotFoundError, ValidationFailedError
from app.core.security import hash_password
from app.models import Base, User
from app.services.users import UserDirectory, normalize_roles, validate_roles

PASSWORD_HASH = hash_password("password123", rounds=4)


def _session() -> Session:
    """Fresh in-memory database with the users table."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


def _user(name: str = "alice1", roles: str = "USER", **kwargs: object) -> User:
    return User(name=name, password=PASSWORD_HASH, roles=roles, **kwargs)


class TestRoleValidation(unittest.TestCase):
    """Roles must all come from {USER, ADMIN}; blank means no roles."""

    def test_empty_is_valid(self) -> None:
        self.assertEqual(normalize_roles(""), "")
        self.assertEqual(normalize_roles(None), "")
        self.assertEqual(normalize_roles([]), "")
        self.assertTrue(validate_roles("  "))

    def test_known_roles_are_trimmed_and_deduplicated(self) -> None:
        self.assertEqual(normalize_roles(" ADMIN , USER,ADMIN,"), "ADMIN,USER")
        self.assertEqual(normalize_roles(["USER", " ADMIN "]), "USER,ADMIN")

    def test_any_unknown_role_rejects_everything(self) -> None:
        for roles in ("ADMIN,SUPERUSER", "GUEST", "user", ["USER", "ROOT"]):
            with self.subTest(roles=roles):
                self.assertFalse(validate_roles(roles))
                with self.assertRaises(ValidationFailedError) as ctx:
                    normalize_roles(roles)
                self.assertEqual(ctx.exception.field, "roles")

    def test_error_names_offending_role(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            normalize_roles("ADMIN,SUPERUSER")
        self.assertIn("SUPERUSER", ctx.exception.message)


class TestCreate(unittest.TestCase):
    """create assigns ids, validates, and rejects duplicate names."""

    def setUp(self) -> None:
        self.db = _session()
        self.directory = UserDirectory(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_create_assigns_id_and_ignores_client_id(self) -> None:
        created = self.directory.create(_user(id=999))
        self.assertIsNotNone(created.id)
        self.assertNotEqual(created.id, 999)
        self.assertEqual(created.version, 1)
        self.assertEqual(self.directory.count(), 1)

    def test_create_normalizes_roles(self) -> None:
        created = self.directory.create(_user(roles="USER, ADMIN"))
        self.assertEqual(created.roles, "USER,ADMIN")
        self.assertEqual(created.role_list, ["USER", "ADMIN"])

    def test_create_with_no_roles(self) -> None:
        created = self.directory.create(_user(roles=""))
        self.assertEqual(created.role_list, [])

    def test_invalid_roles_rejected_and_nothing_stored(self) -> None:
        with self.assertRaises(ValidationFailedError):
            self.directory.create(_user(roles="ADMIN,SUPERUSER"))
        self.assertEqual(self.directory.count(), 0)

    def test_name_length_enforced(self) -> None:
        for name in ("abc", "x" * 32):
            with self.subTest(name=name):
                with self.assertRaises(ValidationFailedError) as ctx:
                    self.directory.create(_user(name=name))
                self.assertEqual(ctx.exception.field, "name")
        self.assertEqual(self.directory.count(), 0)

    def test_duplicate_name_is_conflict(self) -> None:
        self.directory.create(_user(name="alice1"))
        with self.assertRaises(ConflictError):
            self.directory.create(_user(name="alice1", roles="ADMIN"))
        self.assertEqual(self.directory.count(), 1)

    def test_names_are_case_sensitive(self) -> None:
        self.directory.create(_user(name="alice1"))
        self.directory.create(_user(name="Alice1"))
        self.assertEqual(self.directory.count(), 2)

    def test_duplicate_caught_by_unique_constraint(self) -> None:
        """A concurrent insert that slips past the pre-check still surfaces as a conflict."""
        self.directory.create(_user(name="alice1"))
        with patch.object(self.directory, "find_by_name", return_value=None):
            with self.assertRaises(ConflictError):
                self.directory.create(_user(name="alice1"))
        self.assertEqual(self.directory.count(), 1)


class TestUpdate(unittest.TestCase):
    """update needs an existing id and a current version."""

    def setUp(self) -> None:
        self.db = _session()
        self.directory = UserDirectory(self.db)
        self.alice = self.directory.create(_user(name="alice1", roles="USER"))

    def tearDown(self) -> None:
        self.db.close()

    def test_update_changes_fields_and_bumps_version(self) -> None:
        new_hash = hash_password("another-pass", rounds=4)
        updated = self.directory.update(
            User(id=self.alice.id, name="alice2", password=new_hash, roles="ADMIN")
        )
        self.assertEqual(updated.id, self.alice.id)
        self.assertEqual(updated.name, "alice2")
        self.assertEqual(updated.password, new_hash)
        self.assertEqual(updated.roles, "ADMIN")
        self.assertEqual(updated.version, 2)

    def test_update_without_id_fails(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            self.directory.update(_user(name="bobby1"))
        self.assertEqual(ctx.exception.field, "id")
        self.assertEqual(self.directory.count(), 1)
        self.assertIsNone(self.directory.find_by_name("bobby1"))

    def test_update_unknown_id_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.directory.update(_user(id=self.alice.id + 100, name="bobby1"))
        self.assertEqual(self.directory.count(), 1)
        self.assertEqual(self.directory.find(self.alice.id).name, "alice1")

    def test_update_revalidates_roles(self) -> None:
        with self.assertRaises(ValidationFailedError):
            self.directory.update(_user(id=self.alice.id, name="alice1", roles="ROOT"))
        self.assertEqual(self.directory.find(self.alice.id).roles, "USER")

    def test_update_with_stale_version_is_conflict(self) -> None:
        with self.assertRaises(ConflictError):
            self.directory.update(
                _user(id=self.alice.id, name="alice1", roles="ADMIN", version=self.alice.version + 5)
            )
        self.assertEqual(self.directory.find(self.alice.id).roles, "USER")

    def test_concurrent_write_detected_on_commit_is_conflict(self) -> None:
        with patch.object(self.db, "commit", side_effect=StaleDataError("0 rows matched")):
            with patch.object(self.db, "rollback") as rollback:
                with self.assertRaises(ConflictError):
                    self.directory.update(_user(id=self.alice.id, name="alice1", roles="ADMIN"))
                rollback.assert_called_once()

    def test_rename_onto_existing_name_is_conflict(self) -> None:
        self.directory.create(_user(name="bobby1"))
        with self.assertRaises(ConflictError):
            self.directory.update(_user(id=self.alice.id, name="bobby1"))
        self.assertEqual(self.directory.find(self.alice.id).name, "alice1")


class TestQueriesAndDelete(unittest.TestCase):
    """find, find_all, find_all_by_role ordering, and idempotent delete."""

    def setUp(self) -> None:
        self.db = _session()
        self.directory = UserDirectory(self.db)
        for name, roles in (
            ("charlie", "USER"),
            ("alice1", "ADMIN,USER"),
            ("dave01", ""),
            ("bobby1", "ADMIN"),
        ):
            self.directory.create(_user(name=name, roles=roles))

    def tearDown(self) -> None:
        self.db.close()

    def test_find_by_id_and_name(self) -> None:
        bob = self.directory.find_by_name("bobby1")
        self.assertIsNotNone(bob)
        self.assertEqual(self.directory.find(bob.id).name, "bobby1")
        self.assertIsNone(self.directory.find(12345))
        self.assertIsNone(self.directory.find_by_name("nobody"))

    def test_find_all_ordered_by_name(self) -> None:
        names = [u.name for u in self.directory.find_all()]
        self.assertEqual(names, ["alice1", "bobby1", "charlie", "dave01"])

    def test_find_all_by_role(self) -> None:
        admins = [u.name for u in self.directory.find_all_by_role("ADMIN")]
        self.assertEqual(admins, ["alice1", "bobby1"])
        users = [u.name for u in self.directory.find_all_by_role("USER")]
        self.assertEqual(users, ["alice1", "charlie"])

    def test_find_all_by_role_no_match(self) -> None:
        self.assertEqual(self.directory.find_all_by_role("AUDITOR"), [])

    def test_delete_is_idempotent(self) -> None:
        bob_id = self.directory.find_by_name("bobby1").id
        self.directory.delete(bob_id)
        self.directory.delete(bob_id)
        self.directory.delete(98765)
        self.assertEqual(self.directory.count(), 3)
        self.assertIsNone(self.directory.find_by_name("bobby1"))


if __name__ == "__main__":
    unittest.main()
