"""
Cart reconciliation

A user's cart is a list of {"product_id", "quantity"} entries stored on the
user document. Mutations work on `user["cart_items"]` in place, persist the
whole list and return it.
"""
from typing import List, Optional

from database import normalize_id
from errors import NotFound
from repositories import ProductRepository, UserRepository


def _find_item(cart_items: List[dict], product_id: str) -> Optional[dict]:
    product_id = normalize_id(product_id)
    for item in cart_items:
        if normalize_id(item["product_id"]) == product_id:
            return item
    return None


def _save(users: UserRepository, user: dict, cart_items: List[dict]) -> List[dict]:
    user["cart_items"] = cart_items
    users.save_cart(user["id"], cart_items)
    return cart_items


def get_cart_products(user: dict, products: ProductRepository) -> List[dict]:
    """Catalog attributes of every product in the cart, with the cart quantity attached.

    Products that are no longer in the catalog are left out.
    """
    cart_items = user.get("cart_items", [])
    if not cart_items:
        return []
    found = products.find_by_ids([item["product_id"] for item in cart_items])
    result = []
    for product in found:
        item = _find_item(cart_items, product["id"])
        if item is None:
            continue
        result.append({**product, "quantity": item["quantity"]})
    return result


def add_to_cart(users: UserRepository, user: dict, product_id: str) -> List[dict]:
    cart_items = list(user.get("cart_items", []))
    existing = _find_item(cart_items, product_id)
    if existing:
        existing["quantity"] += 1
    else:
        cart_items.append({"product_id": normalize_id(product_id), "quantity": 1})
    return _save(users, user, cart_items)


def remove_all_from_cart(users: UserRepository, user: dict, product_id: Optional[str] = None) -> List[dict]:
    """Empty the cart, or drop only `product_id` when one is given."""
    if not product_id:
        cart_items = []
    else:
        product_id = normalize_id(product_id)
        cart_items = [item for item in user.get("cart_items", []) if normalize_id(item["product_id"]) != product_id]
    return _save(users, user, cart_items)


def update_quantity(users: UserRepository, user: dict, product_id: str, quantity: int) -> List[dict]:
    cart_items = list(user.get("cart_items", []))
    existing = _find_item(cart_items, product_id)
    if existing is None:
        raise NotFound("Product not found in cart", product_id)
    if quantity == 0:
        return remove_all_from_cart(users, user, product_id)
    existing["quantity"] = quantity
    return _save(users, user, cart_items)
