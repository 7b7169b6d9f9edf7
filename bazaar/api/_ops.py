"""
Operations exposed by the API and their handlers.

Each operation is a frozen dataclass naming its value and error types; each
handler takes the operation plus the services it needs, resolved by
annotation, and returns a Result. Business failures come back as
``Error(ShopError)``; anything else propagates.

    runner = build_runner().inject(CartService, carts)
    match await runner.run(GetCart("u1")):
        case Ok(cart): ...
        case Error(err): ...
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from kungfu import Result

from bazaar._types import CouponId, CouponStatus, Money, OrderStatus, ProductId, UserId
from bazaar.cart import Cart, CartService
from bazaar.catalog import (
    CatalogService,
    ProductDraft,
    ProductPage,
    ProductPatch,
    ProductQuery,
    ProductView,
    Review,
    ReviewDraft,
)
from bazaar.checkout import CheckoutOutcome, CheckoutRequest, CheckoutService
from bazaar.coupons import CouponPreview, CouponService
from bazaar.errors import ShopError
from bazaar.ledger import Coupon
from bazaar.ops import Op, Runner, catching, ops
from bazaar.orders import Order, OrderService
from bazaar.payments import PaymentReconciler, PendingOrderSweeper, WebhookOutcome

# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ListProducts(Op[ProductPage, ShopError]):
    query: ProductQuery


@dataclass(frozen=True, slots=True)
class GetProduct(Op[ProductView, ShopError]):
    product_id: ProductId


@dataclass(frozen=True, slots=True)
class CreateProduct(Op[ProductView, ShopError]):
    draft: ProductDraft


@dataclass(frozen=True, slots=True)
class UpdateProduct(Op[ProductView, ShopError]):
    product_id: ProductId
    patch: ProductPatch


@dataclass(frozen=True, slots=True)
class DeleteProduct(Op[ProductId, ShopError]):
    product_id: ProductId


@dataclass(frozen=True, slots=True)
class UpdateDisplayOrder(Op[int, ShopError]):
    entries: tuple[tuple[ProductId, int], ...]


@dataclass(frozen=True, slots=True)
class ListProductReviews(Op[Sequence[Review], ShopError]):
    product_id: ProductId


@dataclass(frozen=True, slots=True)
class AddProductReview(Op[Review, ShopError]):
    draft: ReviewDraft


async def list_products(req: ListProducts, catalog: CatalogService) -> Result[ProductPage, ShopError]:
    return await catching(catalog.list_products(req.query), ShopError)


async def get_product(req: GetProduct, catalog: CatalogService) -> Result[ProductView, ShopError]:
    return await catching(catalog.get_product(req.product_id), ShopError)


async def create_product(req: CreateProduct, catalog: CatalogService) -> Result[ProductView, ShopError]:
    return await catching(catalog.create_product(req.draft), ShopError)


async def update_product(req: UpdateProduct, catalog: CatalogService) -> Result[ProductView, ShopError]:
    return await catching(catalog.update_product(req.product_id, req.patch), ShopError)


async def delete_product(req: DeleteProduct, catalog: CatalogService) -> Result[ProductId, ShopError]:
    async def _delete() -> ProductId:
        await catalog.delete_product(req.product_id)
        return req.product_id

    return await catching(_delete(), ShopError)


async def update_display_order(req: UpdateDisplayOrder, catalog: CatalogService) -> Result[int, ShopError]:
    return await catching(catalog.update_display_order(req.entries), ShopError)


async def list_product_reviews(
    req: ListProductReviews, catalog: CatalogService
) -> Result[Sequence[Review], ShopError]:
    return await catching(catalog.list_reviews(req.product_id), ShopError)


async def add_product_review(req: AddProductReview, catalog: CatalogService) -> Result[Review, ShopError]:
    return await catching(catalog.add_review(req.draft), ShopError)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GetCart(Op[Cart, ShopError]):
    user_id: UserId


@dataclass(frozen=True, slots=True)
class AddToCart(Op[Cart, ShopError]):
    user_id: UserId
    product_id: ProductId
    variant_label: str = ""


@dataclass(frozen=True, slots=True)
class UpdateCart(Op[Cart, ShopError]):
    user_id: UserId
    product_id: ProductId
    variant_label: str
    quantity: int


@dataclass(frozen=True, slots=True)
class ClearCart(Op[Cart, ShopError]):
    user_id: UserId


async def get_cart(req: GetCart, carts: CartService) -> Result[Cart, ShopError]:
    return await catching(carts.get(req.user_id), ShopError)


async def add_to_cart(req: AddToCart, carts: CartService) -> Result[Cart, ShopError]:
    return await catching(carts.add(req.user_id, req.product_id, req.variant_label), ShopError)


async def update_cart(req: UpdateCart, carts: CartService) -> Result[Cart, ShopError]:
    return await catching(
        carts.update(req.user_id, req.product_id, req.variant_label, req.quantity), ShopError
    )


async def clear_cart(req: ClearCart, carts: CartService) -> Result[Cart, ShopError]:
    return await catching(carts.clear(req.user_id), ShopError)


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CreateCoupon(Op[Coupon, ShopError]):
    code: str
    discount_percentage: int
    min_purchase: Money = 0
    max_purchase: Money | None = None
    usage_limit: int | None = None


@dataclass(frozen=True, slots=True)
class ListCoupons(Op[Sequence[Coupon], ShopError]):
    pass


@dataclass(frozen=True, slots=True)
class SetCouponStatus(Op[Coupon, ShopError]):
    coupon_id: CouponId
    status: CouponStatus


@dataclass(frozen=True, slots=True)
class DeleteCoupon(Op[CouponId, ShopError]):
    coupon_id: CouponId


@dataclass(frozen=True, slots=True)
class PreviewCoupon(Op[CouponPreview, ShopError]):
    code: str
    cart_total: Money


@dataclass(frozen=True, slots=True)
class VerifyCoupon(Op[Coupon, ShopError]):
    code: str
    total: Money


async def create_coupon(req: CreateCoupon, coupons: CouponService) -> Result[Coupon, ShopError]:
    return await catching(
        coupons.create(
            req.code,
            req.discount_percentage,
            min_purchase=req.min_purchase,
            max_purchase=req.max_purchase,
            usage_limit=req.usage_limit,
        ),
        ShopError,
    )


async def list_coupons(req: ListCoupons, coupons: CouponService) -> Result[Sequence[Coupon], ShopError]:
    return await catching(coupons.list_coupons(), ShopError)


async def set_coupon_status(req: SetCouponStatus, coupons: CouponService) -> Result[Coupon, ShopError]:
    return await catching(coupons.set_status(req.coupon_id, req.status), ShopError)


async def delete_coupon(req: DeleteCoupon, coupons: CouponService) -> Result[CouponId, ShopError]:
    async def _delete() -> CouponId:
        await coupons.delete(req.coupon_id)
        return req.coupon_id

    return await catching(_delete(), ShopError)


async def preview_coupon(req: PreviewCoupon, coupons: CouponService) -> Result[CouponPreview, ShopError]:
    return await catching(coupons.preview(req.code, req.cart_total), ShopError)


async def verify_coupon(req: VerifyCoupon, coupons: CouponService) -> Result[Coupon, ShopError]:
    return await catching(coupons.verify(req.code, req.total), ShopError)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CreateOrder(Op[CheckoutOutcome, ShopError]):
    request: CheckoutRequest


@dataclass(frozen=True, slots=True)
class ListUserOrders(Op[Sequence[Order], ShopError]):
    user_id: UserId
    include_all: bool = True
    include_online: bool = True
    include_cod: bool = True


@dataclass(frozen=True, slots=True)
class GetOrderDetails(Op[Order, ShopError]):
    user_id: UserId
    ref: str


@dataclass(frozen=True, slots=True)
class ListOrderHistory(Op[Sequence[Order], ShopError]):
    user_id: UserId


@dataclass(frozen=True, slots=True)
class GetOrderHistoryDetails(Op[Order, ShopError]):
    user_id: UserId
    ref: str


@dataclass(frozen=True, slots=True)
class ArchiveOrder(Op[Order, ShopError]):
    order_code: str
    status: OrderStatus


async def create_order(req: CreateOrder, checkout: CheckoutService) -> Result[CheckoutOutcome, ShopError]:
    return await catching(checkout.create_order(req.request), ShopError)


async def list_user_orders(req: ListUserOrders, orders: OrderService) -> Result[Sequence[Order], ShopError]:
    return await catching(
        orders.list_user_orders(
            req.user_id,
            include_all=req.include_all,
            include_online=req.include_online,
            include_cod=req.include_cod,
        ),
        ShopError,
    )


async def get_order_details(req: GetOrderDetails, orders: OrderService) -> Result[Order, ShopError]:
    return await catching(orders.get_order(req.user_id, req.ref), ShopError)


async def list_order_history(req: ListOrderHistory, orders: OrderService) -> Result[Sequence[Order], ShopError]:
    return await catching(orders.list_history(req.user_id), ShopError)


async def get_order_history_details(
    req: GetOrderHistoryDetails, orders: OrderService
) -> Result[Order, ShopError]:
    return await catching(orders.get_history(req.user_id, req.ref), ShopError)


async def archive_order(req: ArchiveOrder, orders: OrderService) -> Result[Order, ShopError]:
    return await catching(orders.archive(req.order_code, req.status), ShopError)


# ═══════════════════════════════════════════════════════════════════════════════
# Payments
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class HandlePaymentWebhook(Op[WebhookOutcome, ShopError]):
    body: bytes
    signature: str | None


@dataclass(frozen=True, slots=True)
class SweepPendingOrders(Op[int, ShopError]):
    now: datetime | None = None


async def handle_payment_webhook(
    req: HandlePaymentWebhook, reconciler: PaymentReconciler
) -> Result[WebhookOutcome, ShopError]:
    return await catching(reconciler.handle(req.body, req.signature), ShopError)


async def sweep_pending_orders(req: SweepPendingOrders, sweeper: PendingOrderSweeper) -> Result[int, ShopError]:
    return await catching(sweeper.sweep(req.now), ShopError)


def build_runner() -> Runner:
    """Every API operation registered; services are injected by the caller."""
    return (
        ops()
        .on(ListProducts, list_products)
        .on(GetProduct, get_product)
        .on(CreateProduct, create_product)
        .on(UpdateProduct, update_product)
        .on(DeleteProduct, delete_product)
        .on(UpdateDisplayOrder, update_display_order)
        .on(ListProductReviews, list_product_reviews)
        .on(AddProductReview, add_product_review)
        .on(GetCart, get_cart)
        .on(AddToCart, add_to_cart)
        .on(UpdateCart, update_cart)
        .on(ClearCart, clear_cart)
        .on(CreateCoupon, create_coupon)
        .on(ListCoupons, list_coupons)
        .on(SetCouponStatus, set_coupon_status)
        .on(DeleteCoupon, delete_coupon)
        .on(PreviewCoupon, preview_coupon)
        .on(VerifyCoupon, verify_coupon)
        .on(CreateOrder, create_order)
        .on(ListUserOrders, list_user_orders)
        .on(GetOrderDetails, get_order_details)
        .on(ListOrderHistory, list_order_history)
        .on(GetOrderHistoryDetails, get_order_history_details)
        .on(ArchiveOrder, archive_order)
        .on(HandlePaymentWebhook, handle_payment_webhook)
        .on(SweepPendingOrders, sweep_pending_orders)
        .compile()
    )


__all__ = (
    "ListProducts",
    "GetProduct",
    "CreateProduct",
    "UpdateProduct",
    "DeleteProduct",
    "UpdateDisplayOrder",
    "ListProductReviews",
    "AddProductReview",
    "GetCart",
    "AddToCart",
    "UpdateCart",
    "ClearCart",
    "CreateCoupon",
    "ListCoupons",
    "SetCouponStatus",
    "DeleteCoupon",
    "PreviewCoupon",
    "VerifyCoupon",
    "CreateOrder",
    "ListUserOrders",
    "GetOrderDetails",
    "ListOrderHistory",
    "GetOrderHistoryDetails",
    "ArchiveOrder",
    "HandlePaymentWebhook",
    "SweepPendingOrders",
    "build_runner",
)
