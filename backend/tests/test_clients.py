"""
Unit tests for client and business profile validation and ClientService.
"""

from decimal import Decimal

import pytest

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.schemas.business_profile import BusinessProfileUpdate, validate_profile_fields
from app.schemas.client import ClientCreate, ClientUpdate, is_valid_email, is_valid_phone, validate_client_fields
from app.services.business_profile_service import BusinessProfileService
from app.services.client_service import ClientService
from conftest import make_result


class TestClientValidation:
    """Tests for client field rules."""

    @pytest.mark.parametrize("email", ["sarah@example.com", "a.b+c@mail.co.au"])
    def test_valid_emails(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["sarah", "sarah@example", "sa rah@example.com", "@example.com"])
    def test_invalid_emails(self, email):
        assert not is_valid_email(email)

    @pytest.mark.parametrize("phone", ["0412 345 678", "+61 (2) 9876-5432", "12345678"])
    def test_valid_phones(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["1234567", "0412-ABC-678"])
    def test_invalid_phones(self, phone):
        assert not is_valid_phone(phone)

    @pytest.mark.parametrize(
        "name, email, phone, expected",
        [
            ("", "sarah@example.com", None, "Client name is required"),
            ("Sarah", None, None, "Client email is required"),
            ("Sarah", "sarah", None, "Please enter a valid email address"),
            ("Sarah", "sarah@example.com", "12", "Please enter a valid phone number"),
            ("", "", "12", "Client name is required"),
        ],
    )
    def test_first_failure(self, name, email, phone, expected):
        with pytest.raises(BusinessValidationError, match=expected):
            validate_client_fields(name, email, phone)

    def test_phone_optional(self):
        validate_client_fields("Sarah", "sarah@example.com", None)

    def test_create_schema_strips(self):
        data = ClientCreate(name="  Sarah ", email=" sarah@example.com ", phone="   ")

        assert data.name == "Sarah"
        assert data.email == "sarah@example.com"
        assert data.phone is None


class TestProfileValidation:
    """Tests for business profile rules."""

    @pytest.mark.parametrize("rate", [Decimal("30"), Decimal("120.50"), Decimal("300")])
    def test_rate_in_range(self, rate):
        validate_profile_fields("tom@example.com", rate)

    @pytest.mark.parametrize("rate", [Decimal("29.99"), Decimal("300.01")])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(BusinessValidationError, match=r"Hourly rate must be between \$30 and \$300"):
            validate_profile_fields(None, rate)

    def test_invalid_email(self):
        with pytest.raises(BusinessValidationError, match="Please enter a valid email address"):
            validate_profile_fields("tom@", Decimal("120"))

    def test_comma_decimal(self):
        assert BusinessProfileUpdate(hourly_rate="120,50").hourly_rate == Decimal("120.50")


class TestClientService:
    """Tests for ClientService."""

    async def test_create(self, mock_db, user_id):
        service = ClientService()

        client = await service.create(mock_db, user_id, ClientCreate(name="Sarah", email="sarah@example.com"))

        assert client.user_id == user_id
        assert client.name == "Sarah"
        mock_db.add.assert_called_once_with(client)
        mock_db.flush.assert_awaited_once()

    async def test_create_invalid(self, mock_db, user_id):
        with pytest.raises(BusinessValidationError, match="Client email is required"):
            await ClientService().create(mock_db, user_id, ClientCreate(name="Sarah"))
        mock_db.add.assert_not_called()

    async def test_update_validates_merged_fields(self, mock_db, user_id, client):
        mock_db.execute.return_value = make_result(client)

        with pytest.raises(BusinessValidationError, match="Please enter a valid email address"):
            await ClientService().update(mock_db, user_id, client.id, ClientUpdate(email="nope"))
        assert client.email == "sarah@example.com"

    async def test_update(self, mock_db, user_id, client):
        mock_db.execute.return_value = make_result(client)

        await ClientService().update(mock_db, user_id, client.id, ClientUpdate(phone="02 9876 5432"))

        assert client.phone == "02 9876 5432"
        assert client.name == "Sarah Nguyen"

    async def test_get_missing(self, mock_db, user_id, client):
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(NotFoundError):
            await ClientService().get_by_id(mock_db, user_id, client.id)

    async def test_delete_with_quotes_refused(self, mock_db, user_id, client):
        mock_db.execute.side_effect = [make_result(client), make_result(scalar=2)]

        with pytest.raises(ConflictError) as exc_info:
            await ClientService().delete(mock_db, user_id, client.id)

        assert exc_info.value.extra == {"quote_count": 2}
        mock_db.delete.assert_not_awaited()

    async def test_delete(self, mock_db, user_id, client):
        mock_db.execute.side_effect = [make_result(client), make_result(scalar=0)]

        await ClientService().delete(mock_db, user_id, client.id)

        mock_db.delete.assert_awaited_once_with(client)


class TestBusinessProfileService:
    """Tests for the profile upsert."""

    async def test_create_keeps_defaults_for_none(self, mock_db, user_id):
        mock_db.execute.return_value = make_result(None)

        profile = await BusinessProfileService().upsert(
            mock_db, user_id, BusinessProfileUpdate(business_name="Tom's Plumbing", hourly_rate=None)
        )

        assert profile.business_name == "Tom's Plumbing"
        assert profile.user_id == user_id
        mock_db.add.assert_called_once_with(profile)

    async def test_invalid_rate(self, mock_db, user_id):
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(BusinessValidationError):
            await BusinessProfileService().upsert(mock_db, user_id, BusinessProfileUpdate(hourly_rate=Decimal("500")))
        mock_db.add.assert_not_called()
