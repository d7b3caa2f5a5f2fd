"""Unit tests for order orchestration."""

import dataclasses
import json
from decimal import Decimal

import pytest

from paypal_orchestrator.infrastructure.vault_repository import InMemoryVaultCustomerRepository
from paypal_orchestrator.models.errors import ErrorKind
from paypal_orchestrator.models.order import (
    ActionRequired,
    Address,
    Captured,
    CheckoutLine,
    CheckoutSnapshot,
    CreateOrderCommand,
    Created,
    Failed,
    OrderAction,
    VaultingMode,
    VaultingRequest,
)
from paypal_orchestrator.models.payment_method import PaymentMethodKind
from paypal_orchestrator.models.result import Err, Ok
from paypal_orchestrator.payments.orders import OrderOrchestrator
from paypal_orchestrator.payments.payment_source import PaymentSourceBuilder
from paypal_orchestrator.payments.vault_customers import VaultCustomerResolver
from paypal_orchestrator.paypal.orders_api import ORDERS_PATH, OrdersApi

SHIPPING_ADDRESS = Address(
    first_name="Ada",
    last_name="Lovelace",
    street_address_1="1 Main St",
    city="Springfield",
    country_area="IL",
    postal_code="62701",
    country_code="us",
)

CREATED_ORDER = {
    "id": "5O190127TN364715T",
    "status": "PAYER_ACTION_REQUIRED",
    "links": [
        {"rel": "self", "href": "https://api-m.sandbox.paypal.com/v2/checkout/orders/5O190127TN364715T"},
        {"rel": "payer-action", "href": "https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T"},
    ],
}


def make_checkout(**overrides) -> CheckoutSnapshot:
    values = dict(
        source_id="Q2hlY2tvdXQ6MQ==",
        channel_id="default-channel",
        lines=[
            CheckoutLine(name="Mug", quantity=2, unit_price_net=Decimal("15.00"), sku="MUG-1"),
            CheckoutLine(name="Poster", quantity=1, unit_price_net=Decimal("10.00")),
        ],
        subtotal_net=Decimal("40.00"),
        shipping_net=Decimal("2.00"),
        shipping_gross=Decimal("2.00"),
        email="ada@example.com",
        shipping_address=SHIPPING_ADDRESS,
        billing_address=SHIPPING_ADDRESS,
    )
    values.update(overrides)
    return CheckoutSnapshot(**values)


def make_command(**overrides) -> CreateOrderCommand:
    values = dict(
        transaction_id="VHJhbnNhY3Rpb246MQ==",
        amount=Decimal("42.00"),
        currency="USD",
        checkout=make_checkout(),
        idempotency_key="txn-1-create",
    )
    values.update(overrides)
    return CreateOrderCommand(**values)


@pytest.fixture
def repository():
    return InMemoryVaultCustomerRepository()


@pytest.fixture
def orchestrator(paypal_client, repository):
    return OrderOrchestrator(
        OrdersApi(paypal_client),
        PaymentSourceBuilder(),
        VaultCustomerResolver(repository),
        partner_merchant_id="PARTNER123",
        brand_name="Example Shop",
    )


def sent_body(fake_paypal, path=ORDERS_PATH) -> dict:
    return json.loads(fake_paypal.calls("POST", path)[-1].content)


class TestBuildOrderRequest:
    """Test suite for the order request body."""

    @pytest.mark.asyncio
    async def test_breakdown_and_items_when_components_add_up(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        await orchestrator.create_order(tenant, make_command())

        unit = sent_body(fake_paypal)["purchase_units"][0]
        assert unit["amount"] == {
            "currency_code": "USD",
            "value": "42.00",
            "breakdown": {
                "item_total": {"currency_code": "USD", "value": "40.00"},
                "shipping": {"currency_code": "USD", "value": "2.00"},
            },
        }
        assert [item["name"] for item in unit["items"]] == ["Mug", "Poster"]
        assert unit["items"][0] == {
            "name": "Mug",
            "quantity": "2",
            "unit_amount": {"currency_code": "USD", "value": "15.00"},
            "category": "PHYSICAL_GOODS",
            "sku": "MUG-1",
        }

    @pytest.mark.asyncio
    async def test_breakdown_and_items_omitted_on_mismatch(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))
        checkout = make_checkout(shipping_net=Decimal("5.00"), shipping_gross=Decimal("5.00"))

        await orchestrator.create_order(tenant, make_command(checkout=checkout))

        unit = sent_body(fake_paypal)["purchase_units"][0]
        assert unit["amount"] == {"currency_code": "USD", "value": "42.00"}
        assert "items" not in unit

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount,attached",
        [
            (Decimal("42.01"), True),
            (Decimal("41.99"), True),
            (Decimal("42.02"), False),
            (Decimal("41.98"), False),
        ],
    )
    async def test_breakdown_tolerance_boundary(self, orchestrator, tenant, fake_paypal, amount, attached):
        """Components summing to 42.00 are attached only while the difference stays below 0.02."""
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        await orchestrator.create_order(tenant, make_command(amount=amount))

        unit = sent_body(fake_paypal)["purchase_units"][0]
        assert unit["amount"]["value"] == str(amount)
        assert ("breakdown" in unit["amount"]) is attached
        assert ("items" in unit) is attached

    @pytest.mark.asyncio
    async def test_tenant_fields(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        await orchestrator.create_order(tenant, make_command())

        body = sent_body(fake_paypal)
        unit = body["purchase_units"][0]
        assert body["intent"] == "CAPTURE"
        assert unit["soft_descriptor"] == "SHOP*EXAMPLE"
        assert unit["payee"] == {"merchant_id": "MERCHANT123"}
        assert "payment_instruction" not in unit
        assert json.loads(unit["custom_id"])["transaction_id"] == "VHJhbnNhY3Rpb246MQ=="

    @pytest.mark.asyncio
    async def test_platform_fee(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))
        tenant = dataclasses.replace(tenant, partner_fee_percent=Decimal("2.5"))

        await orchestrator.create_order(tenant, make_command())

        instruction = sent_body(fake_paypal)["purchase_units"][0]["payment_instruction"]
        assert instruction == {
            "disbursement_mode": "INSTANT",
            "platform_fees": [{"amount": {"currency_code": "USD", "value": "1.05"}}],
        }

    @pytest.mark.asyncio
    async def test_no_platform_fee_without_partner(self, paypal_client, repository, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))
        orchestrator = OrderOrchestrator(
            OrdersApi(paypal_client), PaymentSourceBuilder(), VaultCustomerResolver(repository)
        )
        tenant = dataclasses.replace(tenant, partner_fee_percent=Decimal("2.5"))

        await orchestrator.create_order(tenant, make_command())

        assert "payment_instruction" not in sent_body(fake_paypal)["purchase_units"][0]

    @pytest.mark.asyncio
    async def test_authorization_intent(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        await orchestrator.create_order(tenant, make_command(action=OrderAction.AUTHORIZATION))

        assert sent_body(fake_paypal)["intent"] == "AUTHORIZE"

    @pytest.mark.asyncio
    async def test_shipping_and_payer(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        await orchestrator.create_order(
            tenant, make_command(vaulting=VaultingRequest(payment_method_type=PaymentMethodKind.PAYPAL))
        )

        body = sent_body(fake_paypal)
        shipping = body["purchase_units"][0]["shipping"]
        assert shipping["name"] == {"full_name": "Ada Lovelace"}
        assert shipping["address"]["country_code"] == "US"
        assert body["payer"]["email_address"] == "ada@example.com"
        context = body["payment_source"]["paypal"]["experience_context"]
        assert context["shipping_preference"] == "SET_PROVIDED_ADDRESS"
        assert context["user_action"] == "PAY_NOW"
        assert context["brand_name"] == "Example Shop"

    @pytest.mark.asyncio
    async def test_digital_checkout_has_no_shipping(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))
        checkout = make_checkout(
            shipping_net=Decimal(0),
            shipping_gross=Decimal(0),
            subtotal_net=Decimal("42.00"),
            shipping_address=None,
        )

        await orchestrator.create_order(
            tenant,
            make_command(
                checkout=checkout,
                vaulting=VaultingRequest(payment_method_type=PaymentMethodKind.PAYPAL),
            ),
        )

        body = sent_body(fake_paypal)
        assert "shipping" not in body["purchase_units"][0]
        assert body["purchase_units"][0]["items"][0]["category"] == "DIGITAL_GOODS"
        assert body["payment_source"]["paypal"]["experience_context"]["shipping_preference"] == "NO_SHIPPING"

    @pytest.mark.asyncio
    async def test_idempotency_key_is_request_id(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        await orchestrator.create_order(tenant, make_command())

        request = fake_paypal.calls("POST", ORDERS_PATH)[0]
        assert request.headers["PayPal-Request-Id"] == "txn-1-create"


class TestCreateOrder:
    """Test suite for interpreting order creation."""

    @pytest.mark.asyncio
    async def test_action_required(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))

        result = await orchestrator.create_order(tenant, make_command())

        assert isinstance(result, ActionRequired)
        assert result.order_id == "5O190127TN364715T"
        assert result.approval_url == "https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T"
        assert result.vaulting.mode is VaultingMode.NONE

    @pytest.mark.asyncio
    async def test_vaulted_order_completes_immediately(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add(
            "POST",
            ORDERS_PATH,
            (
                201,
                {
                    "id": "ORDER-2",
                    "status": "COMPLETED",
                    "purchase_units": [
                        {
                            "payments": {
                                "captures": [
                                    {
                                        "id": "CAPTURE-1",
                                        "status": "COMPLETED",
                                        "amount": {"currency_code": "USD", "value": "42.00"},
                                    }
                                ]
                            }
                        }
                    ],
                },
            ),
        )
        command = make_command(
            vaulting=VaultingRequest(vault_id="vault-1", merchant_initiated=True)
        )

        result = await orchestrator.create_order(tenant, command)

        assert isinstance(result, Captured)
        assert result.psp_reference == "CAPTURE-1"
        assert result.amount.value == "42.00"
        source = sent_body(fake_paypal)["payment_source"]
        assert source["card"]["vault_id"] == "vault-1"
        assert source["card"]["stored_credential"]["payment_initiator"] == "MERCHANT"

    @pytest.mark.asyncio
    async def test_save_during_purchase_creates_customer(self, orchestrator, tenant, fake_paypal, repository):
        fake_paypal.add("POST", ORDERS_PATH, (201, CREATED_ORDER))
        command = make_command(
            vaulting=VaultingRequest(
                payment_method_type=PaymentMethodKind.PAYPAL,
                save_payment_method=True,
                platform_user_id="user-1",
            )
        )

        result = await orchestrator.create_order(tenant, command)

        assert isinstance(result, ActionRequired)
        assert result.vaulting.mode is VaultingMode.SAVE_DURING_PURCHASE
        assert result.vaulting.customer_id == "user-1"
        attributes = sent_body(fake_paypal)["payment_source"]["paypal"]["attributes"]
        assert attributes["customer"] == {"id": "user-1"}
        assert await repository.get(tenant.tenant_id, "user-1") is not None

    @pytest.mark.asyncio
    async def test_vaulting_requires_buyer(self, orchestrator, tenant, fake_paypal):
        command = make_command(vaulting=VaultingRequest(save_payment_method=True))

        result = await orchestrator.create_order(tenant, command)

        assert isinstance(result, Failed)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.code == "VAULTING_REQUIRES_BUYER"
        assert fake_paypal.requests == []

    @pytest.mark.asyncio
    async def test_merchant_initiated_requires_vault_id(self, orchestrator, tenant, fake_paypal):
        command = make_command(vaulting=VaultingRequest(merchant_initiated=True))

        result = await orchestrator.create_order(tenant, command)

        assert isinstance(result, Failed)
        assert result.error.code == "MIT_REQUIRES_VAULT_ID"
        assert fake_paypal.requests == []

    @pytest.mark.asyncio
    async def test_invalid_amount_fails_locally(self, orchestrator, tenant, fake_paypal):
        result = await orchestrator.create_order(tenant, make_command(amount=Decimal("-1")))

        assert isinstance(result, Failed)
        assert result.error.code == "INVALID_AMOUNT"
        assert fake_paypal.requests == []

    @pytest.mark.asyncio
    async def test_processor_rejection(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add(
            "POST",
            ORDERS_PATH,
            (
                422,
                {
                    "name": "UNPROCESSABLE_ENTITY",
                    "details": [{"issue": "PAYEE_ACCOUNT_RESTRICTED", "description": "restricted"}],
                    "debug_id": "f00ba7",
                },
            ),
        )

        result = await orchestrator.create_order(tenant, make_command())

        assert isinstance(result, Failed)
        assert result.error.kind == ErrorKind.PROCESSOR_REJECTED
        assert result.error.code == "PAYEE_ACCOUNT_RESTRICTED"
        assert result.error.debug_id == "f00ba7"


class TestCompleteOrder:
    """Test suite for capture and authorization."""

    @pytest.mark.asyncio
    async def test_capture(self, orchestrator, tenant, fake_paypal):
        path = f"{ORDERS_PATH}/ORDER-1/capture"
        fake_paypal.add(
            "POST",
            path,
            (
                201,
                {
                    "id": "ORDER-1",
                    "status": "COMPLETED",
                    "payment_source": {"paypal": {"attributes": {"vault": {"id": "vault-9", "status": "VAULTED"}}}},
                    "purchase_units": [
                        {
                            "payments": {
                                "captures": [
                                    {
                                        "id": "CAPTURE-9",
                                        "status": "COMPLETED",
                                        "amount": {"currency_code": "USD", "value": "42.00"},
                                    }
                                ]
                            }
                        }
                    ],
                },
            ),
        )

        result = await orchestrator.capture_order(tenant, "ORDER-1", idempotency_key="cap-1")

        assert isinstance(result, Captured)
        assert result.psp_reference == "CAPTURE-9"
        assert result.vault_id == "vault-9"
        assert fake_paypal.calls("POST", path)[0].headers["PayPal-Request-Id"] == "cap-1"

    @pytest.mark.asyncio
    async def test_declined_capture(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add(
            "POST",
            f"{ORDERS_PATH}/ORDER-1/capture",
            (
                201,
                {
                    "id": "ORDER-1",
                    "status": "COMPLETED",
                    "purchase_units": [{"payments": {"captures": [{"id": "CAPTURE-1", "status": "DECLINED"}]}}],
                },
            ),
        )

        result = await orchestrator.capture_order(tenant, "ORDER-1")

        assert isinstance(result, Failed)
        assert result.error.code == "CAPTURE_DECLINED"
        assert result.order_id == "ORDER-1"

    @pytest.mark.asyncio
    async def test_authorize(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add(
            "POST",
            f"{ORDERS_PATH}/ORDER-1/authorize",
            (
                201,
                {
                    "id": "ORDER-1",
                    "status": "COMPLETED",
                    "purchase_units": [
                        {
                            "payments": {
                                "authorizations": [
                                    {
                                        "id": "AUTH-1",
                                        "status": "CREATED",
                                        "amount": {"currency_code": "USD", "value": "42.00"},
                                    }
                                ]
                            }
                        }
                    ],
                },
            ),
        )

        result = await orchestrator.authorize_order(tenant, "ORDER-1")

        assert isinstance(result, Captured)
        assert result.psp_reference == "AUTH-1"

    @pytest.mark.asyncio
    async def test_capture_not_approved(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add(
            "POST",
            f"{ORDERS_PATH}/ORDER-1/capture",
            (422, {"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_NOT_APPROVED"}]}),
        )

        result = await orchestrator.capture_order(tenant, "ORDER-1")

        assert isinstance(result, Failed)
        assert result.error.code == "ORDER_NOT_APPROVED"


class TestGetAndUpdateOrder:
    """Test suite for reading and amending orders."""

    @pytest.mark.asyncio
    async def test_get_order(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add(
            "GET",
            f"{ORDERS_PATH}/ORDER-1",
            (
                200,
                {
                    "id": "ORDER-1",
                    "status": "APPROVED",
                    "intent": "CAPTURE",
                    "purchase_units": [{"amount": {"currency_code": "USD", "value": "42.00"}, "custom_id": "x"}],
                },
            ),
        )

        result = await orchestrator.get_order(tenant, "ORDER-1")

        assert isinstance(result, Ok)
        assert result.value == {
            "id": "ORDER-1",
            "status": "APPROVED",
            "intent": "CAPTURE",
            "amount": {"currency_code": "USD", "value": "42.00"},
            "custom_id": "x",
        }

    @pytest.mark.asyncio
    async def test_get_unknown_order(self, orchestrator, tenant):
        result = await orchestrator.get_order(tenant, "missing")

        assert isinstance(result, Err)
        assert result.error.code == "RESOURCE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_update_order(self, orchestrator, tenant, fake_paypal):
        fake_paypal.add("PATCH", f"{ORDERS_PATH}/ORDER-1", (204, None))
        operations = [
            {
                "op": "replace",
                "path": "/purchase_units/@reference_id=='default'/amount",
                "value": {"currency_code": "USD", "value": "45.00"},
            }
        ]

        result = await orchestrator.update_order(tenant, "ORDER-1", operations)

        assert result == Created(order_id="ORDER-1", status="UPDATED")
        assert json.loads(fake_paypal.calls("PATCH", f"{ORDERS_PATH}/ORDER-1")[0].content) == operations

    @pytest.mark.asyncio
    async def test_empty_patch_is_rejected(self, orchestrator, tenant, fake_paypal):
        result = await orchestrator.update_order(tenant, "ORDER-1", [])

        assert isinstance(result, Failed)
        assert result.error.code == "EMPTY_PATCH"
        assert fake_paypal.requests == []
