import random
from datetime import datetime, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient

from schemas import CheckoutSession


class FakeUserRepository:
    def __init__(self):
        self.docs = {}
        self._ids = count(1)

    def get(self, user_id):
        return self.docs.get(user_id)

    def find_by_email(self, email):
        return next((u for u in self.docs.values() if u["email"] == email), None)

    def create(self, doc):
        user_id = f"user{next(self._ids)}"
        self.docs[user_id] = {**doc, "id": user_id}
        return user_id

    def save_cart(self, user_id, cart_items):
        self.docs[user_id]["cart_items"] = [dict(item) for item in cart_items]

    def count(self):
        return len(self.docs)


class FakeProductRepository:
    def __init__(self):
        self.docs = {}
        self._ids = count(1)

    def add(self, **fields):
        product_id = f"prod{next(self._ids)}"
        doc = {"id": product_id, "description": None, "image": None, "is_featured": False, **fields}
        self.docs[product_id] = doc
        return doc

    def find_by_ids(self, product_ids):
        return [dict(doc) for pid, doc in self.docs.items() if pid in product_ids]

    def list_all(self):
        return [dict(doc) for doc in self.docs.values()]

    def featured(self):
        return [dict(doc) for doc in self.docs.values() if doc["is_featured"]]

    def by_category(self, category):
        return [dict(doc) for doc in self.docs.values() if doc["category"] == category]

    def sample(self, size):
        docs = list(self.docs.values())
        return [dict(doc) for doc in random.sample(docs, min(size, len(docs)))]

    def create(self, product):
        return self.add(**product.model_dump())

    def toggle_featured(self, product_id):
        doc = self.docs.get(product_id)
        if doc is None:
            return None
        doc["is_featured"] = not doc["is_featured"]
        return dict(doc)

    def delete(self, product_id):
        return self.docs.pop(product_id, None) is not None

    def count(self):
        return len(self.docs)


class FakeCouponRepository:
    def __init__(self):
        self.docs = []

    def find_active(self, code, user_id):
        return next((c for c in self.docs if c["code"] == code and c["user_id"] == user_id and c["is_active"]), None)

    def find_active_for_user(self, user_id):
        return next((c for c in self.docs if c["user_id"] == user_id and c["is_active"]), None)

    def deactivate(self, code, user_id):
        for coupon in self.docs:
            if coupon["code"] == code and coupon["user_id"] == user_id:
                coupon["is_active"] = False
                return True
        return False

    def create(self, coupon):
        doc = coupon.model_dump()
        doc["id"] = f"coupon{len(self.docs) + 1}"
        self.docs.append(doc)
        return doc["id"]


class FakeOrderRepository:
    def __init__(self):
        self.docs = []
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def create(self, order):
        doc = order.model_dump()
        doc["id"] = f"order{len(self.docs) + 1}"
        doc["created_at"] = self.now
        self.docs.append(doc)
        return doc["id"]

    def add(self, created_at, total_amount):
        self.docs.append({"created_at": created_at, "total_amount": total_amount})

    def totals(self):
        if not self.docs:
            return {"total_sales": 0, "total_revenue": 0}
        return {"total_sales": len(self.docs), "total_revenue": sum(d["total_amount"] for d in self.docs)}

    def daily_sales(self, start, end):
        groups = {}
        for doc in self.docs:
            if start <= doc["created_at"] < end:
                day = doc["created_at"].strftime("%Y-%m-%d")
                row = groups.setdefault(day, {"_id": day, "sales": 0, "revenue": 0})
                row["sales"] += 1
                row["revenue"] += doc["total_amount"]
        return [groups[day] for day in sorted(groups)]


class FakeGateway:
    def __init__(self):
        self.created = []
        self.sessions = {}
        self.coupons = []

    def create_session(self, line_items, success_url, cancel_url, discounts, metadata):
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append({
            "id": session_id,
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "discounts": discounts,
            "metadata": metadata,
        })
        self.sessions[session_id] = CheckoutSession(id=session_id, payment_status="unpaid", metadata=metadata)
        return session_id

    def mark_paid(self, session_id, amount_total):
        session = self.sessions[session_id]
        self.sessions[session_id] = session.model_copy(update={"payment_status": "paid", "amount_total": amount_total})

    def retrieve_session(self, session_id):
        return self.sessions[session_id]

    def create_coupon(self, percent_off):
        self.coupons.append(percent_off)
        return f"stripe_coupon_{len(self.coupons)}"


@pytest.fixture(autouse=True)
def deterministic_seed():
    random.seed(1337)


@pytest.fixture
def users():
    return FakeUserRepository()


@pytest.fixture
def products():
    return FakeProductRepository()


@pytest.fixture
def coupons():
    return FakeCouponRepository()


@pytest.fixture
def orders():
    return FakeOrderRepository()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def user(users):
    user_id = users.create({"name": "Ada", "email": "ada@example.com", "hashed_password": "x",
                            "is_admin": False, "cart_items": []})
    return users.get(user_id)


@pytest.fixture
def client(users, products, coupons, orders, gateway, user):
    import main
    from auth import get_current_user, get_users

    main.app.dependency_overrides = {
        get_users: lambda: users,
        main.get_products: lambda: products,
        main.get_coupons: lambda: coupons,
        main.get_orders: lambda: orders,
        main.get_gateway: lambda: gateway,
        get_current_user: lambda: user,
    }
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides = {}
