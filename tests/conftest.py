import csv
import json
from datetime import date

import pytest

from salesledger.backend.aggregator import (
    EngagementEvent,
    EngagementRecord,
    FollowUpStatus,
    PointOfSaleRecord,
    Product,
    SalesFilter,
)
from salesledger.backend.services import ReportService


def make_customer(
    customer_id="c1",
    name="Asha Verma",
    salesperson_id="sp1",
    salesperson_name="Ravi",
    events=(),
    created_at="2024-03-01",
):
    return EngagementRecord(
        customer_id=customer_id,
        customer_name=name,
        mobile="9876543210",
        location="Pune",
        salesperson_id=salesperson_id,
        salesperson_name=salesperson_name,
        events=list(events),
        created_at=created_at,
    )


def closed_won(day, amount, remarks=""):
    return EngagementEvent(date=day, status=FollowUpStatus.CLOSED_WON, amount=amount, remarks=remarks)


def make_sale(sale_id="s1", day="2024-03-15", quantity=3, product_id="p1",
              product_name="Split AC 1.5T", brand_name="Voltas", bill_number="B-101"):
    return PointOfSaleRecord(
        sale_id=sale_id,
        product_id=product_id,
        product_name=product_name,
        brand_name=brand_name,
        model_number="VX-15",
        date=day,
        customer_name="Kiran Rao",
        quantity=quantity,
        bill_number=bill_number,
    )


@pytest.fixture
def march():
    return SalesFilter.from_params("2024-03-01", "2024-03-31")


@pytest.fixture
def scenario_a_customer():
    return make_customer(events=[closed_won("2024-03-15", 5000, remarks="Paid in full")])


@pytest.fixture
def scenario_c_sale():
    return make_sale(day="2024-03-15", quantity=3)


@pytest.fixture
def mixed_records():
    """2名の担当者・複数日にまたがる成約と在庫販売"""
    customers = [
        make_customer(
            "c1", "Asha Verma", "sp1", "Ravi",
            events=[
                closed_won("2024-03-15", 5000),
                EngagementEvent(date="2024-03-16", status="scheduled"),
                closed_won("2024-03-20", 1500),
            ],
        ),
        make_customer(
            "c2", "Meera Iyer", "sp2", "Anil",
            events=[
                closed_won("2024-03-15", 2500),
                EngagementEvent(date="2024-03-18", status=FollowUpStatus.CLOSED_LOST),
            ],
        ),
        make_customer(
            "c3", "Vikram Das", "sp1", "Ravi",
            events=[closed_won("not-a-date", 900)],
        ),
    ]
    sales = [
        make_sale("s1", "2024-03-15", 3),
        make_sale("s2", "2024-03-17", 1, product_id="p2", product_name="Fridge 250L", brand_name="LG"),
        make_sale("s3", "2024-04-02", 2),
    ]
    return customers, sales


@pytest.fixture
def products():
    return [
        Product("p1", "Split AC 1.5T", "b1", "Voltas", "VX-15", quantity_available=10),
        Product("p2", "Fridge 250L", "b2", "LG", "LG-250", quantity_available=2),
        Product("p3", "Washer 7kg", "b2", "LG", "LG-7", quantity_available=0),
    ]


@pytest.fixture
def service(mixed_records, products):
    customers, sales = mixed_records
    return ReportService(customers, sales, products)


@pytest.fixture
def data_dir(tmp_path):
    """customers.json / sale_entries.csv / products.csv を作成"""
    customers = [
        {
            "id": "c1",
            "name": "Asha Verma",
            "mobile": "9876543210",
            "location": "Pune",
            "createdAt": "2024-03-01T10:00:00Z",
            "salesPerson": {"id": "sp1", "name": "Ravi"},
            "followUps": [
                {"id": "f1", "date": "2024-03-15T18:30:00", "status": "Sales completed",
                 "salesAmount": 5000, "remarks": "Paid in full"},
                {"id": "f2", "date": "2024-03-16", "status": "Scheduled next follow-up"},
            ],
        },
        {
            "id": "c2",
            "name": "Meera Iyer",
            "mobile": "9123456780",
            "location": "Mumbai",
            "createdAt": "2024-03-02",
            "salesPerson": {"id": "sp2", "name": "Anil"},
            "followUps": [
                {"id": "f3", "date": "2024-03-15", "status": "closed-won", "salesAmount": "2500"},
            ],
        },
    ]
    (tmp_path / "customers.json").write_text(json.dumps(customers), encoding="utf-8")

    with open(tmp_path / "products.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "productName", "brandId", "brandName", "modelNumber", "quantityAvailable"])
        writer.writerow(["p1", "Split AC 1.5T", "b1", "Voltas", "VX-15", "10"])
        writer.writerow(["p2", "Fridge 250L", "b2", "LG", "LG-250", "2"])

    with open(tmp_path / "sale_entries.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "productId", "saleDate", "customerName", "quantitySold", "billNumber"])
        writer.writerow(["s1", "p1", "2024-03-15", "Kiran Rao", "3", "B-101"])
        writer.writerow(["s2", "p2", "2024-03-17", "Sunil Jain", "1", ""])
        writer.writerow(["s3", "p9", "2024-03-17", "Nisha Paul", "2", ""])
        writer.writerow(["s4", "p1", "2024-03-18", "Bad Row", "abc", ""])
        writer.writerow(["s5", "p1", "2024-03-18", "Zero Row", "0", ""])

    return tmp_path


@pytest.fixture
def today():
    return date(2024, 3, 20)
