from unittest.mock import patch, AsyncMock

import pytest
from fastapi import status

from campus.auth.constants import ROLE_HIERARCHY
from campus.db.user import EmailAlreadyRegisteredError
from campus.models import Role, User, UserStatus

PASSWORD = "Str0ng!Pass"


def _user(user_id: int = 2, **overrides) -> User:
    fields = {
        "id": user_id,
        "email": f"user{user_id}@example.com",
        "first_name": "Target",
        "last_name": "User",
        "password_hash": "hash",
        "status": UserStatus.ACTIVE,
        "is_email_verified": True,
    }
    fields.update(overrides)
    return User(**fields)


def _role(name: str) -> Role:
    return Role(id=1, name=name, display_name=name.title(), hierarchy_level=10)


@pytest.fixture
def admin_db():
    """Patch every persistence call made by the admin routes."""
    names = [
        "get_all_users",
        "get_active_role_names_for_users",
        "get_user_by_email",
        "get_user_by_id",
        "create_user_in_db",
        "get_active_role_names",
        "get_active_roles_by_names",
        "update_user",
        "apply_role_changes",
    ]
    patches = {
        name: patch(f"campus.routes.admin.{name}", new_callable=AsyncMock)
        for name in names
    }
    mocks = {name: p.start() for name, p in patches.items()}
    yield mocks
    for p in patches.values():
        p.stop()


@pytest.mark.usefixtures("mock_role_hierarchy")
class TestListUsers:
    def test_requires_authentication(self, client):
        response = client.get("/admin/users")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.parametrize("role", ["TEACHER", "MODERATOR", "STUDENT"])
    def test_non_admins_are_forbidden(self, client, login_as, role):
        login_as(role)

        response = client.get("/admin/users")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "FORBIDDEN"
        assert "ADMIN, SUPER_ADMIN" in response.json()["detail"]

    def test_lists_users_with_roles(self, client, login_as, admin_db):
        login_as("ADMIN")
        admin_db["get_all_users"].return_value = [_user(2), _user(3)]
        admin_db["get_active_role_names_for_users"].return_value = {2: ["TEACHER"]}

        response = client.get("/admin/users")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [user["id"] for user in body] == [2, 3]
        assert body[0]["roles"] == ["TEACHER"]
        assert body[1]["roles"] == []
        assert "password_hash" not in body[0]
        admin_db["get_active_role_names_for_users"].assert_called_once_with([2, 3])


@pytest.mark.usefixtures("mock_role_hierarchy")
class TestCreateUser:
    payload = {
        "email": "New.Admin@Example.com",
        "first_name": "New",
        "last_name": "Admin",
        "password": PASSWORD,
    }

    def test_admin_cannot_create(self, client, login_as, admin_db):
        login_as("ADMIN")

        response = client.post("/admin/users", json=self.payload)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        admin_db["create_user_in_db"].assert_not_called()

    def test_super_admin_creates_active_admin(self, client, login_as, admin_db):
        login_as("SUPER_ADMIN")
        admin_db["get_user_by_email"].return_value = None
        admin_db["create_user_in_db"].return_value = _user(
            9, email="new.admin@example.com", first_name="New", last_name="Admin"
        )
        admin_db["get_active_role_names"].return_value = ["ADMIN"]

        response = client.post("/admin/users", json=self.payload)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["roles"] == ["ADMIN"]
        assert response.json()["status"] == "ACTIVE"
        kwargs = admin_db["create_user_in_db"].call_args.kwargs
        assert kwargs["email"] == "new.admin@example.com"
        assert kwargs["status"] == UserStatus.ACTIVE
        assert kwargs["is_email_verified"] is True
        assert kwargs["role_names"] == ["ADMIN"]
        assert kwargs["password_hash"] != PASSWORD

    def test_existing_email_conflicts(self, client, login_as, admin_db):
        login_as("SUPER_ADMIN")
        admin_db["get_user_by_email"].return_value = _user(4)

        response = client.post("/admin/users", json=self.payload)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json() == {
            "detail": "User with this email already exists",
            "code": "CONFLICT",
        }

    def test_race_on_insert_conflicts(self, client, login_as, admin_db):
        login_as("SUPER_ADMIN")
        admin_db["get_user_by_email"].return_value = None
        admin_db["create_user_in_db"].side_effect = EmailAlreadyRegisteredError()

        response = client.post("/admin/users", json=self.payload)

        assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.usefixtures("mock_role_hierarchy")
class TestUpdateUserStatus:
    def test_student_cannot_call(self, client, login_as, admin_db):
        login_as("STUDENT")

        response = client.patch("/admin/users/2/status", json={"status": "SUSPENDED"})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_user(self, client, login_as, admin_db):
        login_as("ADMIN")
        admin_db["get_user_by_id"].return_value = None

        response = client.patch("/admin/users/2/status", json={"status": "SUSPENDED"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "User not found"

    def test_cannot_modify_higher_ranked_user(self, client, login_as, admin_db):
        login_as("TEACHER")
        admin_db["get_user_by_id"].return_value = _user(2)
        admin_db["get_active_role_names"].return_value = ["ADMIN"]

        response = client.patch("/admin/users/2/status", json={"status": "SUSPENDED"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "You do not have permission to modify this user"
        admin_db["update_user"].assert_not_called()

    def test_updates_lower_ranked_user(self, client, login_as, admin_db):
        login_as("TEACHER")
        admin_db["get_user_by_id"].side_effect = [
            _user(2),
            _user(2, status=UserStatus.SUSPENDED),
        ]
        admin_db["get_active_role_names"].return_value = ["STUDENT"]

        response = client.patch("/admin/users/2/status", json={"status": "SUSPENDED"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "SUSPENDED"
        admin_db["update_user"].assert_called_once_with(2, status=UserStatus.SUSPENDED)

    def test_rejects_unknown_status(self, client, login_as, admin_db):
        login_as("ADMIN")

        response = client.patch("/admin/users/2/status", json={"status": "DELETED"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.usefixtures("mock_role_hierarchy")
class TestUpdateUserRoles:
    def test_admin_cannot_grant_admin(self, client, login_as, admin_db):
        login_as("ADMIN")

        response = client.patch("/admin/users/2/roles", json={"roles": ["ADMIN"]})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "assign" in response.json()["detail"]
        admin_db["apply_role_changes"].assert_not_called()

    def test_teacher_cannot_grant_anything(self, client, login_as, admin_db):
        login_as("TEACHER")

        response = client.patch("/admin/users/2/roles", json={"roles": ["STUDENT"]})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_user(self, client, login_as, admin_db):
        login_as("ADMIN")
        admin_db["get_user_by_id"].return_value = None

        response = client.patch("/admin/users/2/roles", json={"roles": ["TEACHER"]})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_inactive_role_is_not_found(self, client, login_as, admin_db):
        login_as("ADMIN")
        admin_db["get_user_by_id"].return_value = _user(2)
        admin_db["get_active_roles_by_names"].return_value = [_role("TEACHER")]

        response = client.patch(
            "/admin/users/2/roles", json={"roles": ["TEACHER", "MENTOR"]}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Role MENTOR not found"

    def test_applies_only_the_difference(self, client, login_as, admin_db):
        login_as("ADMIN")
        admin_db["get_user_by_id"].return_value = _user(2)
        admin_db["get_active_roles_by_names"].return_value = [
            _role("TEACHER"),
            _role("MENTOR"),
        ]
        admin_db["get_active_role_names"].side_effect = [
            ["STUDENT", "TEACHER"],
            ["TEACHER", "MENTOR"],
        ]

        response = client.patch(
            "/admin/users/2/roles", json={"roles": ["TEACHER", "MENTOR", "TEACHER"]}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["roles"] == ["TEACHER", "MENTOR"]
        admin_db["apply_role_changes"].assert_called_once_with(2, ["MENTOR"], ["STUDENT"])

    def test_cannot_strip_a_role_above_own_authority(self, client, login_as, admin_db):
        login_as("ADMIN")
        admin_db["get_user_by_id"].return_value = _user(2)
        admin_db["get_active_roles_by_names"].return_value = [_role("STUDENT")]
        admin_db["get_active_role_names"].return_value = ["SUPER_ADMIN"]

        response = client.patch("/admin/users/2/roles", json={"roles": ["STUDENT"]})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert "remove" in response.json()["detail"]
        admin_db["apply_role_changes"].assert_not_called()

    def test_empty_role_list_is_rejected(self, client, login_as, admin_db):
        login_as("SUPER_ADMIN")

        response = client.patch("/admin/users/2/roles", json={"roles": []})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def _hierarchy_without(*names: str):
    return {role: level for role, level in ROLE_HIERARCHY.items() if role not in names}


class TestHierarchyGuard:
    """Routes also check rank against the live hierarchy after membership."""

    def test_list_denied_when_caller_role_deactivated(self, client, login_as, admin_db):
        login_as("ADMIN")

        with patch(
            "campus.auth.rbac.get_role_hierarchy",
            new_callable=AsyncMock,
            return_value=_hierarchy_without("ADMIN"),
        ):
            response = client.get("/admin/users")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Access denied. Insufficient role hierarchy level"
        admin_db["get_all_users"].assert_not_called()

    def test_create_denied_when_super_admin_missing(self, client, login_as, admin_db):
        login_as("SUPER_ADMIN")

        with patch(
            "campus.auth.rbac.get_role_hierarchy",
            new_callable=AsyncMock,
            return_value=_hierarchy_without("SUPER_ADMIN"),
        ):
            response = client.post(
                "/admin/users",
                json={
                    "email": "new.admin@example.com",
                    "first_name": "New",
                    "last_name": "Admin",
                    "password": PASSWORD,
                },
            )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        admin_db["create_user_in_db"].assert_not_called()

    def test_status_denied_when_caller_role_deactivated(self, client, login_as, admin_db):
        login_as("MENTOR")

        with patch(
            "campus.auth.rbac.get_role_hierarchy",
            new_callable=AsyncMock,
            return_value=_hierarchy_without("MENTOR"),
        ):
            response = client.patch("/admin/users/2/status", json={"status": "SUSPENDED"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "FORBIDDEN"
        admin_db["update_user"].assert_not_called()

    def test_status_allowed_with_live_hierarchy(self, client, login_as, admin_db):
        login_as("MENTOR")
        admin_db["get_user_by_id"].return_value = _user(2)
        admin_db["get_active_role_names"].return_value = ["STUDENT"]

        with patch(
            "campus.auth.rbac.get_role_hierarchy",
            new_callable=AsyncMock,
            return_value=dict(ROLE_HIERARCHY),
        ), patch(
            "campus.routes.admin.get_role_hierarchy",
            new_callable=AsyncMock,
            return_value=dict(ROLE_HIERARCHY),
        ):
            response = client.patch("/admin/users/2/status", json={"status": "INACTIVE"})

        assert response.status_code == status.HTTP_200_OK
