import os
import tempfile
from datetime import date
from decimal import Decimal

# configuration is read at import time, so it has to be in place first
_DB_DIR = tempfile.mkdtemp(prefix="consolidation-tests-")
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_PATH"] = os.path.join(_DB_DIR, "test.db")
os.environ["RATE_ENGINE_URL"] = ""
os.environ["NOTIFY_WEBHOOK_URL"] = ""
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.core.db import Base, engine, AsyncSessionLocal, get_db
from app.schemas.masters.customer_account_schemas import CustomerAccountCreate
from app.schemas.operations.run_schemas import RunCreate
from app.schemas.operations.shipment_schemas import ShipmentCreate
from app.services.masters.customer_account_service import create_account
from app.services.operations.run_service import create_run
from app.services.operations.shipment_service import book_shipment

from tests.fakes import RecordingNotifier

OPERATOR = "tester"
SHIPMENT_DATE = date(2024, 5, 10)


@pytest_asyncio.fixture(autouse=True)
async def _schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # pooled connections belong to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_account(db):
    async def _make(code="ACME", credit_limit="10000", opening_balance="0", branch="DEL"):
        return await create_account(
            db,
            CustomerAccountCreate(
                account_code=code,
                name=f"{code} Traders",
                branch=branch,
                credit_limit=Decimal(credit_limit),
                opening_balance=Decimal(opening_balance),
            ),
            OPERATOR,
        )

    return _make


@pytest.fixture
def book(db, notifier):
    async def _book(awb_no, account_code="ACME", basic="100", shipment_date=SHIPMENT_DATE, **fields):
        shipment, _ = await book_shipment(
            db,
            ShipmentCreate(
                awb_no=awb_no,
                account_code=account_code,
                shipment_date=shipment_date,
                basic_amt=Decimal(basic),
                **fields,
            ),
            OPERATOR,
            notifier=notifier,
        )
        return shipment

    return _book


@pytest.fixture
def make_run(db):
    async def _make(run_no="R100"):
        return await create_run(db, RunCreate(run_no=run_no, flight_no="AI-101"), OPERATOR)

    return _make


@pytest_asyncio.fixture
async def client():
    from main import app

    async def override_get_db():
        async with AsyncSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
