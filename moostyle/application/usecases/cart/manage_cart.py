"""
===============================================================================
USE CASE: Manage Cart (get / add / remove / update / clear / sync)
===============================================================================

Business Goal:
    Mantener el carrito de un usuario: un carrito por usuario, creado on-demand,
    con items mergeados por product_id.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ManageCartUseCase

Responsibilities:
    - get-or-create del carrito.
    - Aplicar la mutación en el agregado Cart y persistirlo.
    - Traducir "item inexistente" / cantidades inválidas a CartError.

Collaborators:
    - CartRepository
    - domain.entities.Cart / ProductSnapshot
===============================================================================
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from ....domain.entities import ProductSnapshot
from ....domain.repositories import CartRepository
from .cart_results import CartError, CartErrorCode, CartResult


class ManageCartUseCase:
    def __init__(self, cart_repository: CartRepository) -> None:
        self._carts = cart_repository

    def get_cart(self, user_id: UUID) -> CartResult:
        return CartResult(cart=self._carts.get_or_create(user_id))

    def add_item(
        self, user_id: UUID, product: ProductSnapshot, quantity: int = 1
    ) -> CartResult:
        if quantity < 1:
            return self._invalid("Quantity must be at least 1")

        cart = self._carts.get_or_create(user_id)
        cart.add_item(product, quantity)
        self._carts.save(cart)
        return CartResult(cart=cart, message="Item added to cart")

    def remove_item(self, user_id: UUID, product_id: str) -> CartResult:
        cart = self._carts.get_or_create(user_id)
        if not cart.remove_item(product_id):
            return self._item_not_found(product_id)
        self._carts.save(cart)
        return CartResult(cart=cart, message="Item removed from cart")

    def update_quantity(
        self, user_id: UUID, product_id: str, quantity: int
    ) -> CartResult:
        cart = self._carts.get_or_create(user_id)
        if not cart.update_item_quantity(product_id, quantity):
            return self._item_not_found(product_id)
        self._carts.save(cart)
        message = "Item removed from cart" if quantity <= 0 else "Cart updated"
        return CartResult(cart=cart, message=message)

    def clear(self, user_id: UUID) -> CartResult:
        cart = self._carts.get_or_create(user_id)
        cart.clear()
        self._carts.save(cart)
        return CartResult(cart=cart, message="Cart cleared")

    def sync(
        self, user_id: UUID, items: Iterable[tuple[ProductSnapshot, int]]
    ) -> CartResult:
        """Reemplaza la lista completa (merge por product_id; cantidades < 1 se ignoran)."""
        cart = self._carts.get_or_create(user_id)
        cart.replace_items(items)
        self._carts.save(cart)
        return CartResult(cart=cart, message="Cart synced")

    @staticmethod
    def _invalid(message: str) -> CartResult:
        return CartResult(error=CartError(CartErrorCode.VALIDATION_ERROR, message))

    @staticmethod
    def _item_not_found(product_id: str) -> CartResult:
        return CartResult(
            error=CartError(
                CartErrorCode.NOT_FOUND,
                f"Item '{product_id}' not found in cart",
                resource="CartItem",
            )
        )
