"""
Per-collection data access

Services never touch pymongo directly; they receive one of these
repositories. Documents are returned as plain dicts with a string "id" in
place of "_id".
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, ensure_object_id, get_documents, to_str_id
from schemas import CartItem, Coupon, Order, Product


class UserRepository:
    def __init__(self, database: Database):
        self.collection = database["user"]

    def get(self, user_id: str) -> Optional[dict]:
        return to_str_id(self.collection.find_one({"_id": ensure_object_id(user_id)}))

    def find_by_email(self, email: str) -> Optional[dict]:
        return to_str_id(self.collection.find_one({"email": email}))

    def create(self, doc: dict) -> str:
        return create_document(self.collection, doc)

    def save_cart(self, user_id: str, cart_items: List[dict]) -> None:
        items = [CartItem(**item).model_dump() for item in cart_items]
        self.collection.update_one({"_id": ensure_object_id(user_id)}, {"$set": {"cart_items": items}})

    def count(self) -> int:
        return self.collection.count_documents({})


class ProductRepository:
    def __init__(self, database: Database):
        self.collection = database["product"]

    def find_by_ids(self, product_ids: List[str]) -> List[dict]:
        # ids that cannot be ObjectIds can never match a product
        ids = [ObjectId(pid) for pid in product_ids if ObjectId.is_valid(pid)]
        return get_documents(self.collection, {"_id": {"$in": ids}})

    def list_all(self) -> List[dict]:
        return get_documents(self.collection)

    def featured(self) -> List[dict]:
        return get_documents(self.collection, {"is_featured": True})

    def by_category(self, category: str) -> List[dict]:
        return get_documents(self.collection, {"category": category})

    def sample(self, size: int) -> List[dict]:
        cursor = self.collection.aggregate([
            {"$sample": {"size": size}},
            {"$project": {"_id": 1, "name": 1, "description": 1, "image": 1, "price": 1}},
        ])
        return [to_str_id(doc) for doc in cursor]

    def create(self, product: Product) -> dict:
        inserted_id = create_document(self.collection, product)
        return to_str_id(self.collection.find_one({"_id": ensure_object_id(inserted_id)}))

    def toggle_featured(self, product_id: str) -> Optional[dict]:
        updated = self.collection.find_one_and_update(
            {"_id": ensure_object_id(product_id)},
            [{"$set": {"is_featured": {"$not": "$is_featured"}}}],
            return_document=ReturnDocument.AFTER,
        )
        return to_str_id(updated)

    def delete(self, product_id: str) -> bool:
        result = self.collection.delete_one({"_id": ensure_object_id(product_id)})
        return result.deleted_count > 0

    def count(self) -> int:
        return self.collection.count_documents({})


class CouponRepository:
    def __init__(self, database: Database):
        self.collection = database["coupon"]

    def find_active(self, code: str, user_id: str) -> Optional[dict]:
        return to_str_id(self.collection.find_one({"code": code, "user_id": user_id, "is_active": True}))

    def find_active_for_user(self, user_id: str) -> Optional[dict]:
        return to_str_id(self.collection.find_one({"user_id": user_id, "is_active": True}))

    def deactivate(self, code: str, user_id: str) -> bool:
        """Deactivate the first coupon with this code for the user. Returns False if there is none."""
        updated = self.collection.find_one_and_update(
            {"code": code, "user_id": user_id},
            {"$set": {"is_active": False}},
        )
        return updated is not None

    def create(self, coupon: Coupon) -> str:
        return create_document(self.collection, coupon)


class OrderRepository:
    def __init__(self, database: Database):
        self.collection = database["order"]

    def create(self, order: Order) -> str:
        return create_document(self.collection, order)

    def totals(self) -> Dict[str, Any]:
        rows = list(self.collection.aggregate([
            {
                "$group": {
                    "_id": None,
                    "total_sales": {"$sum": 1},
                    "total_revenue": {"$sum": "$total_amount"},
                }
            }
        ]))
        if not rows:
            return {"total_sales": 0, "total_revenue": 0}
        return {"total_sales": rows[0]["total_sales"], "total_revenue": rows[0]["total_revenue"]}

    def daily_sales(self, start: datetime, end: datetime) -> List[dict]:
        """Orders created in [start, end) grouped by UTC day, ascending."""
        return list(self.collection.aggregate([
            {"$match": {"created_at": {"$gte": start, "$lt": end}}},
            {
                "$group": {
                    "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}},
                    "sales": {"$sum": 1},
                    "revenue": {"$sum": "$total_amount"},
                }
            },
            {"$sort": {"_id": 1}},
        ]))
