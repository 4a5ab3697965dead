"""Onboarding wizard controller tests."""

import asyncio

import pytest

from dealdesk.middleware.exceptions import WizardBusyError, WizardStateError
from dealdesk.schemas.deal import DealContext
from dealdesk.schemas.wizard import WizardStep
from dealdesk.services.wizard import WizardController


def _script_happy_path(fake_api, access_link="https://pay.example/inv/42"):
    fake_api.add("POST", "/deals/7/investors", status=201, json={"id": 42})
    fake_api.add("PATCH", "/deals/7/investors/42", json={"id": 42, "access_link": access_link})
    fake_api.add("POST", "/investor_profiles/individuals", status=201, json={"id": 99})
    fake_api.add("PATCH", "/deals/7/investors/99", json={"id": 99})


async def _run_to_details(controller, basic_info):
    controller.update_fields(basic_info)
    await controller.advance()
    controller.update_fields({"investment_amount": "1000"})
    await controller.advance()
    assert controller.session.step == WizardStep.DETAILS


@pytest.mark.asyncio
class TestBasicInfoStep:

    async def test_creates_investor_and_advances(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", status=201, json={"id": 42})
        controller.update_fields(basic_info)

        progress = await controller.advance()

        assert progress.investor_id == 42
        assert progress.step == WizardStep.INVESTMENT
        assert progress.field_errors == {}
        assert progress.api_error is None
        assert fake_api.body(0) == {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "phone_number": "555-123-4567",
            "tags": ["web-form"],
            "deal_id": 7,
        }

    async def test_validation_blocks_remote_call(self, controller, fake_api, basic_info):
        controller.update_fields({**basic_info, "email": ""})

        progress = await controller.advance()

        assert progress.step == WizardStep.BASIC_INFO
        assert progress.field_errors == {"email": "Email is required"}
        assert fake_api.requests == []

    async def test_network_failure_keeps_step(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", error=True)
        controller.update_fields(basic_info)

        progress = await controller.advance()

        assert progress.step == WizardStep.BASIC_INFO
        assert progress.investor_id is None
        assert "Could not reach the deal API" in progress.api_error

    async def test_retry_after_failure(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", status=500, json={"message": "db down"})
        controller.update_fields(basic_info)
        assert (await controller.advance()).api_error == "db down"

        fake_api.add("POST", "/deals/7/investors", status=201, json={"id": 42})
        progress = await controller.advance()

        assert progress.step == WizardStep.INVESTMENT
        assert progress.api_error is None
        assert len(fake_api.requests) == 2

    async def test_missing_id_is_an_error(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", status=201, json={})
        controller.update_fields(basic_info)

        progress = await controller.advance()

        assert progress.step == WizardStep.BASIC_INFO
        assert progress.api_error == "Deal API did not return an id for the investor"


@pytest.mark.asyncio
class TestInvestmentStep:

    async def test_below_minimum_makes_no_call(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", json={"id": 42})
        controller.update_fields(basic_info)
        await controller.advance()

        controller.update_fields({"investment_amount": "250"})
        progress = await controller.advance()

        assert progress.step == WizardStep.INVESTMENT
        assert progress.field_errors == {"investment_amount": "Minimum investment is $300"}
        assert fake_api.calls() == [("POST", "/deals/7/investors")]

    async def test_sends_amount_and_securities(self, controller, fake_api, basic_info):
        _script_happy_path(fake_api)
        controller.update_fields(basic_info)
        await controller.advance()

        controller.update_fields({"investment_amount": "1000"})
        progress = await controller.advance()

        assert progress.step == WizardStep.DETAILS
        assert progress.access_link == "https://pay.example/inv/42"
        assert fake_api.calls()[1] == ("PATCH", "/deals/7/investors/42")
        assert fake_api.body(1) == {"investment_value": 1000.0, "number_of_securities": 4}

    async def test_oversized_amount_makes_no_call(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", json={"id": 42})
        controller.update_fields(basic_info)
        await controller.advance()

        controller.update_fields({"investment_amount": "1e40"})
        progress = await controller.advance()

        assert progress.step == WizardStep.INVESTMENT
        assert progress.field_errors == {"investment_amount": "Investment amount is too large"}
        assert fake_api.calls() == [("POST", "/deals/7/investors")]

    async def test_unmappable_amount_reported_as_api_error(self, gateway, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", json={"id": 42})
        controller = WizardController(DealContext(deal_id=7, price_per_security=1e-20), gateway)
        controller.update_fields(basic_info)
        await controller.advance()

        controller.update_fields({"investment_amount": "1000000000000"})
        progress = await controller.advance()

        assert progress.step == WizardStep.INVESTMENT
        assert progress.api_error == "Investment amount is too large for this deal"
        assert not progress.busy
        assert fake_api.calls() == [("POST", "/deals/7/investors")]


@pytest.mark.asyncio
class TestDetailsStep:

    async def test_completes_with_profile_link(self, controller, fake_api, basic_info, details):
        _script_happy_path(fake_api)
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)

        progress = await controller.advance()

        assert progress.step == WizardStep.COMPLETED
        assert progress.is_complete
        assert progress.profile_id == 99
        assert progress.investor_id == 42
        assert progress.redirect_url is None
        assert fake_api.calls() == [
            ("POST", "/deals/7/investors"),
            ("PATCH", "/deals/7/investors/42"),
            ("POST", "/investor_profiles/individuals"),
            ("PATCH", "/deals/7/investors/99"),
        ]
        profile = fake_api.body(2)
        assert profile["investor_id"] == 42
        assert profile["investor_profile_id"] == 42
        assert profile["date_of_birth"] == "1990-04-07"
        assert profile["phone_number"] == "5551234567"
        assert fake_api.body(3) == {
            "investor_profile_id": 99,
            "current_step": "contact-information",
        }

    async def test_profile_error_keeps_step(self, controller, fake_api, basic_info, details):
        _script_happy_path(fake_api)
        fake_api.add(
            "POST", "/investor_profiles/individuals",
            status=422, json={"error": "invalid taxpayer id"},
        )
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)

        progress = await controller.advance()

        assert progress.api_error == "invalid taxpayer id"
        assert progress.step == WizardStep.DETAILS
        assert ("PATCH", "/deals/7/investors/99") not in fake_api.calls()

    async def test_link_failure_keeps_step(self, controller, fake_api, basic_info, details):
        _script_happy_path(fake_api)
        fake_api.add("PATCH", "/deals/7/investors/99", status=404, json={"message": "no such investor"})
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)

        progress = await controller.advance()

        assert progress.step == WizardStep.DETAILS
        assert progress.api_error == "no such investor"
        assert progress.profile_id is None

    async def test_redirect_policy(self, deal, gateway, fake_api, basic_info, details):
        _script_happy_path(fake_api)
        controller = WizardController(deal, gateway, redirect_on_access_link=True)
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)

        progress = await controller.advance()

        assert progress.redirect_url == "https://pay.example/inv/42"

    async def test_redirect_policy_without_link(self, deal, gateway, fake_api, basic_info, details):
        _script_happy_path(fake_api, access_link=None)
        controller = WizardController(deal, gateway, redirect_on_access_link=True)
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)

        progress = await controller.advance()

        assert progress.is_complete
        assert progress.redirect_url is None

    async def test_form_encoded_link(self, deal, gateway, fake_api, basic_info, details):
        _script_happy_path(fake_api)
        controller = WizardController(deal, gateway, link_encoding="form")
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)

        await controller.advance()

        link = fake_api.requests[3]
        assert link.headers["content-type"] == "application/x-www-form-urlencoded"

    async def test_no_transition_out_of_completed(self, controller, fake_api, basic_info, details):
        _script_happy_path(fake_api)
        await _run_to_details(controller, basic_info)
        controller.update_fields(details)
        await controller.advance()

        with pytest.raises(WizardStateError):
            await controller.advance()
        with pytest.raises(WizardStateError):
            controller.go_back()
        with pytest.raises(WizardStateError):
            controller.update_fields({"city": "Paris"})


@pytest.mark.asyncio
class TestNavigationAndEdits:

    async def test_back_keeps_fields_and_identity(self, controller, fake_api, basic_info):
        _script_happy_path(fake_api)
        await _run_to_details(controller, basic_info)

        progress = controller.go_back()

        assert progress.step == WizardStep.INVESTMENT
        assert progress.investor_id == 42
        assert progress.fields["investment_amount"] == "1000"
        assert progress.fields["first_name"] == "Ada"
        assert controller.go_back().step == WizardStep.BASIC_INFO

    async def test_cannot_go_back_from_first_step(self, controller):
        with pytest.raises(WizardStateError):
            controller.go_back()

    async def test_investor_id_never_overwritten(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", json={"id": 42})
        controller.update_fields(basic_info)
        await controller.advance()
        controller.go_back()

        fake_api.add("POST", "/deals/7/investors", json={"id": 43})
        progress = await controller.advance()

        assert progress.step == WizardStep.INVESTMENT
        assert progress.investor_id == 42

    async def test_edit_clears_api_error_and_field_error(self, controller, fake_api, basic_info):
        controller.update_fields({**basic_info, "email": "", "phone": ""})
        await controller.advance()
        controller.session.api_error = "earlier failure"

        progress = controller.update_fields({"email": "ada@example.com"})

        assert progress.api_error is None
        assert progress.field_errors == {"phone": "Phone is required"}

    async def test_null_edit_keeps_value(self, controller, basic_info):
        controller.update_fields(basic_info)

        progress = controller.update_fields({"email": None, "phone": "555-0101"})

        assert progress.fields["email"] == "ada@example.com"
        assert progress.fields["phone"] == "555-0101"

    async def test_validation_replaces_errors(self, controller, fake_api, basic_info):
        controller.update_fields({"first_name": "Ada"})
        first = await controller.advance()
        assert set(first.field_errors) == {"last_name", "email", "phone"}

        controller.session.fields.update(last_name="Lovelace", email="ada@example.com")
        second = await controller.advance()
        assert second.field_errors == {"phone": "Phone is required"}

    async def test_step_only_moves_after_clean_validation(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", json={"id": 42})
        steps = []
        for fields in ({}, {"first_name": "Ada"}, basic_info):
            controller.update_fields(fields)
            progress = await controller.advance()
            steps.append((progress.step, bool(progress.field_errors)))

        assert steps == [
            (WizardStep.BASIC_INFO, True),
            (WizardStep.BASIC_INFO, True),
            (WizardStep.INVESTMENT, False),
        ]


@pytest.mark.asyncio
class TestInFlightLock:

    async def test_controls_locked_while_pending(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", json={"id": 42})
        fake_api.hold()
        controller.update_fields(basic_info)

        task = asyncio.create_task(controller.advance())
        await fake_api.received.wait()

        assert controller.busy
        assert controller.snapshot().busy
        with pytest.raises(WizardBusyError):
            await controller.advance()
        with pytest.raises(WizardBusyError):
            controller.go_back()
        with pytest.raises(WizardBusyError):
            controller.update_fields({"email": "x@example.com"})
        assert controller.session.step == WizardStep.BASIC_INFO
        assert controller.session.investor_id is None

        fake_api.release()
        progress = await task

        assert not controller.busy
        assert progress.step == WizardStep.INVESTMENT
        assert len(fake_api.requests) == 1

    async def test_lock_released_after_failure(self, controller, fake_api, basic_info):
        fake_api.add("POST", "/deals/7/investors", error=True)
        controller.update_fields(basic_info)

        await controller.advance()

        assert not controller.busy
