"""SQL-backed user directory used for shop deletion cascades."""

import pytest

from shopsavvy.validation import ValidationError


class TestSqlUserDirectory:
    def test_add_and_list(self, users):
        users.add_user(user_id="u1", name=" Sam ", email="Sam@Example.com", shop_id="shop1")
        users.add_user(user_id="u2", name="Kim", role="manager", shop_id="shop2")

        sam = users.get_user("u1")
        assert sam.name == "Sam"
        assert sam.email == "sam@example.com"
        assert sam.role == "staff"
        assert [u.id for u in users.list_users(shop_id="shop2")] == ["u2"]
        assert sam.to_dict()["shopId"] == "shop1"

    def test_duplicate_email_rejected(self, users):
        users.add_user(user_id="u1", name="Sam", email="sam@example.com")

        with pytest.raises(ValidationError):
            users.add_user(user_id="u2", name="Other", email="SAM@example.com")

        assert [u.id for u in users.list_users()] == ["u1"]

    def test_unknown_role_rejected(self, users):
        with pytest.raises(ValidationError):
            users.add_user(user_id="u1", name="Sam", role="owner")

    def test_remove_users_by_shop(self, users):
        users.add_user(user_id="u1", name="A", shop_id="shop1")
        users.add_user(user_id="u2", name="B", shop_id="shop1")
        users.add_user(user_id="u3", name="C", shop_id="shop2")

        assert users.remove_users_by_shop("shop1") == 2
        assert users.remove_users_by_shop("shop1") == 0
        assert [u.id for u in users.list_users()] == ["u3"]
