"""
Wire schemas.

Requests validate transport payloads and build domain ops (``to_domain``);
responses render op results (``from_domain``) in the ``{success: true, ...}``
envelope. JSON keys are camelCase; amounts are integer minor units.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bazaar._types import ComboPriceMode, CouponStatus, OrderStatus, PaymentMethod, ProductType
from bazaar.api._ops import (
    AddProductReview,
    AddToCart,
    ArchiveOrder,
    ClearCart,
    CreateCoupon,
    CreateOrder,
    CreateProduct,
    DeleteCoupon,
    DeleteProduct,
    GetCart,
    GetOrderDetails,
    GetOrderHistoryDetails,
    GetProduct,
    HandlePaymentWebhook,
    ListCoupons,
    ListOrderHistory,
    ListProductReviews,
    ListProducts,
    ListUserOrders,
    PreviewCoupon,
    SetCouponStatus,
    UpdateCart,
    UpdateDisplayOrder,
    UpdateProduct,
    VerifyCoupon,
)
from bazaar.cart import Cart
from bazaar.catalog import (
    ComboItem,
    ProductDraft,
    ProductPage,
    ProductPatch,
    ProductQuery,
    ProductView,
    RequestedLine,
    Review,
    ReviewDraft,
    VariantDraft,
)
from bazaar.checkout import AwaitingPayment, CheckoutOutcome, CheckoutRequest, PlacedOrder
from bazaar.coupons import CouponPreview
from bazaar.ledger import Coupon
from bazaar.orders import Order, ShippingAddress
from bazaar.payments import SIGNATURE_HEADER, WebhookOutcome


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserScoped(Schema):
    """Filled from the ``X-User-Id`` header; the body cannot set it."""

    user_id: str = Field(alias="user_id", min_length=1)


class Envelope(Schema):
    success: bool = True


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


class VariantIn(Schema):
    label: str
    price: int
    stock: int = 0
    is_default: bool = False
    sku: str = ""

    def to_draft(self) -> VariantDraft:
        return VariantDraft(self.label, self.price, self.stock, self.is_default, self.sku)


class ComboItemIn(Schema):
    product_id: str
    variant_label: str = ""
    quantity: int = 1

    def to_item(self) -> ComboItem:
        return ComboItem(self.product_id.strip(), self.variant_label.strip(), self.quantity)


class ListProductsRequest(Schema):
    q: str = ""
    page: int = 1
    limit: int = 24
    sort: str = "display_order"
    in_stock: bool | None = None
    product_type: ProductType | None = None
    only_combos: bool = False
    show_in_combos_section: bool | None = None

    def to_domain(self) -> ListProducts:
        return ListProducts(
            ProductQuery(
                q=self.q,
                page=self.page,
                limit=self.limit,
                sort=self.sort,
                in_stock=self.in_stock,
                product_type=self.product_type,
                only_combos=self.only_combos,
                show_in_combos_section=self.show_in_combos_section,
            )
        )


class GetProductRequest(Schema):
    id: str = Field(min_length=1)

    def to_domain(self) -> GetProduct:
        return GetProduct(self.id)


class CreateProductRequest(Schema):
    name: str
    photos: list[str]
    description: str = ""
    price: int = 0
    in_stock: bool = True
    variants: list[VariantIn] = []
    product_type: ProductType = ProductType.SINGLE
    combo_items: list[ComboItemIn] = []
    combo_price_mode: ComboPriceMode = ComboPriceMode.FIXED
    combo_discount: int = 0
    show_in_combos_section: bool = False
    display_order: int = 9999

    def to_domain(self) -> CreateProduct:
        return CreateProduct(
            ProductDraft(
                name=self.name,
                photos=tuple(self.photos),
                description=self.description,
                price=self.price,
                in_stock=self.in_stock,
                variants=tuple(v.to_draft() for v in self.variants),
                product_type=self.product_type,
                combo_items=tuple(ci.to_item() for ci in self.combo_items),
                combo_price_mode=self.combo_price_mode,
                combo_discount=self.combo_discount,
                show_in_combos_section=self.show_in_combos_section,
                display_order=self.display_order,
            )
        )


class UpdateProductRequest(Schema):
    id: str = Field(min_length=1)
    name: str | None = None
    description: str | None = None
    photos: list[str] | None = None
    price: int | None = None
    in_stock: bool | None = None
    variants: list[VariantIn] | None = None
    product_type: ProductType | None = None
    combo_items: list[ComboItemIn] | None = None
    combo_price_mode: ComboPriceMode | None = None
    combo_discount: int | None = None
    show_in_combos_section: bool | None = None
    display_order: int | None = None

    def to_domain(self) -> UpdateProduct:
        return UpdateProduct(
            self.id,
            ProductPatch(
                name=self.name,
                description=self.description,
                photos=tuple(self.photos) if self.photos is not None else None,
                price=self.price,
                in_stock=self.in_stock,
                variants=tuple(v.to_draft() for v in self.variants) if self.variants is not None else None,
                product_type=self.product_type,
                combo_items=(
                    tuple(ci.to_item() for ci in self.combo_items) if self.combo_items is not None else None
                ),
                combo_price_mode=self.combo_price_mode,
                combo_discount=self.combo_discount,
                show_in_combos_section=self.show_in_combos_section,
                display_order=self.display_order,
            ),
        )


class DeleteProductRequest(Schema):
    id: str = Field(min_length=1)

    def to_domain(self) -> DeleteProduct:
        return DeleteProduct(self.id)


class DisplayOrderEntry(Schema):
    product_id: str
    display_order: int


class DisplayOrderRequest(Schema):
    orders: list[DisplayOrderEntry]

    def to_domain(self) -> UpdateDisplayOrder:
        return UpdateDisplayOrder(tuple((e.product_id.strip(), e.display_order) for e in self.orders))


class VariantOut(Schema):
    label: str
    price: int
    stock: int
    is_default: bool
    sku: str


class ComboItemOut(Schema):
    product_id: str
    variant_label: str
    quantity: int


class ProductOut(Schema):
    id: str
    name: str
    description: str
    photos: list[str]
    price: int
    in_stock: bool
    product_type: ProductType
    variants: list[VariantOut]
    combo_items: list[ComboItemOut]
    combo_price_mode: ComboPriceMode
    combo_discount: int
    show_in_combos_section: bool
    display_order: int
    computed_price: int
    computed_in_stock: bool
    created_at: datetime | None

    @classmethod
    def of(cls, view: ProductView) -> ProductOut:
        p = view.product
        return cls(
            id=p.id,
            name=p.name,
            description=p.description,
            photos=list(p.photos),
            price=p.price,
            in_stock=p.in_stock,
            product_type=p.product_type,
            variants=[
                VariantOut(label=v.label, price=v.price, stock=v.stock, is_default=v.is_default, sku=v.sku)
                for v in p.variants
            ],
            combo_items=[
                ComboItemOut(product_id=ci.product_id, variant_label=ci.variant_label, quantity=ci.quantity)
                for ci in p.combo_items
            ],
            combo_price_mode=p.combo_price_mode,
            combo_discount=p.combo_discount,
            show_in_combos_section=p.show_in_combos_section,
            display_order=p.display_order,
            computed_price=view.computed_price,
            computed_in_stock=view.computed_in_stock,
            created_at=p.created_at,
        )


class ProductResponse(Envelope):
    product: ProductOut

    @classmethod
    def from_domain(cls, dom: ProductView) -> ProductResponse:
        return cls(product=ProductOut.of(dom))


class ProductPageResponse(Envelope):
    products: list[ProductOut]
    total: int
    page: int
    pages: int

    @classmethod
    def from_domain(cls, dom: ProductPage) -> ProductPageResponse:
        return cls(
            products=[ProductOut.of(v) for v in dom.items],
            total=dom.total,
            page=dom.page,
            pages=dom.pages,
        )


class DeletedResponse(Envelope):
    id: str

    @classmethod
    def from_domain(cls, dom: str) -> DeletedResponse:
        return cls(id=dom)


class DisplayOrderResponse(Envelope):
    matched: int

    @classmethod
    def from_domain(cls, dom: int) -> DisplayOrderResponse:
        return cls(matched=dom)


class ListReviewsRequest(Schema):
    product_id: str = Field(min_length=1)

    def to_domain(self) -> ListProductReviews:
        return ListProductReviews(self.product_id.strip())


class AddReviewRequest(UserScoped):
    product_id: str = Field(min_length=1)
    rating: int
    comment: str = ""
    city: str = ""
    user_name: str = ""

    def to_domain(self) -> AddProductReview:
        return AddProductReview(
            ReviewDraft(
                product_id=self.product_id.strip(),
                user_id=self.user_id,
                rating=self.rating,
                comment=self.comment,
                city=self.city,
                user_name=self.user_name,
            )
        )


class ReviewOut(Schema):
    id: str
    product_id: str
    user_name: str
    city: str
    rating: int
    comment: str
    created_at: datetime

    @classmethod
    def of(cls, review: Review) -> ReviewOut:
        return cls(
            id=review.id,
            product_id=review.product_id,
            user_name=review.user_name,
            city=review.city,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )


class ReviewResponse(Envelope):
    review: ReviewOut

    @classmethod
    def from_domain(cls, dom: Review) -> ReviewResponse:
        return cls(review=ReviewOut.of(dom))


class ReviewListResponse(Envelope):
    reviews: list[ReviewOut]

    @classmethod
    def from_domain(cls, dom: Sequence[Review]) -> ReviewListResponse:
        return cls(reviews=[ReviewOut.of(r) for r in dom])


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class GetCartRequest(UserScoped):
    def to_domain(self) -> GetCart:
        return GetCart(self.user_id)


class ClearCartRequest(UserScoped):
    def to_domain(self) -> ClearCart:
        return ClearCart(self.user_id)


class AddToCartRequest(UserScoped):
    product_id: str
    variant_label: str = ""

    def to_domain(self) -> AddToCart:
        return AddToCart(self.user_id, self.product_id.strip(), self.variant_label.strip())


class UpdateCartRequest(UserScoped):
    product_id: str
    quantity: int
    variant_label: str = ""

    def to_domain(self) -> UpdateCart:
        return UpdateCart(self.user_id, self.product_id.strip(), self.variant_label, self.quantity)


class CartLineOut(Schema):
    product_id: str
    variant_label: str
    quantity: int
    price_at_add: int
    name: str
    image: str


class CartResponse(Envelope):
    items: list[CartLineOut]
    total_amount: int
    item_count: int

    @classmethod
    def from_domain(cls, dom: Cart) -> CartResponse:
        return cls(
            items=[
                CartLineOut(
                    product_id=i.product_id,
                    variant_label=i.variant_label,
                    quantity=i.quantity,
                    price_at_add=i.price_at_add,
                    name=i.name,
                    image=i.image,
                )
                for i in dom.items
            ],
            total_amount=dom.total_amount,
            item_count=dom.item_count,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


class CreateCouponRequest(Schema):
    code: str
    discount_percentage: int
    min_purchase: int = 0
    max_purchase: int | None = None
    usage_limit: int | None = None

    def to_domain(self) -> CreateCoupon:
        return CreateCoupon(
            self.code,
            self.discount_percentage,
            min_purchase=self.min_purchase,
            max_purchase=self.max_purchase,
            usage_limit=self.usage_limit,
        )


class ListCouponsRequest(Schema):
    def to_domain(self) -> ListCoupons:
        return ListCoupons()


class CouponStatusRequest(Schema):
    id: str = Field(min_length=1)
    status: CouponStatus

    def to_domain(self) -> SetCouponStatus:
        return SetCouponStatus(self.id, self.status)


class DeleteCouponRequest(Schema):
    id: str = Field(min_length=1)

    def to_domain(self) -> DeleteCoupon:
        return DeleteCoupon(self.id)


class PreviewCouponRequest(UserScoped):
    code: str
    cart_total: int = 0

    def to_domain(self) -> PreviewCoupon:
        return PreviewCoupon(self.code, self.cart_total)


class VerifyCouponRequest(UserScoped):
    code: str
    total: int

    def to_domain(self) -> VerifyCoupon:
        return VerifyCoupon(self.code, self.total)


class CouponOut(Schema):
    id: str
    code: str
    discount_percentage: int
    min_purchase: int
    max_purchase: int
    usage_limit: int
    status: CouponStatus
    created_at: datetime | None

    @classmethod
    def of(cls, coupon: Coupon) -> CouponOut:
        return cls(
            id=coupon.id,
            code=coupon.code,
            discount_percentage=coupon.discount_percentage,
            min_purchase=coupon.min_purchase,
            max_purchase=coupon.max_purchase,
            usage_limit=coupon.usage_limit,
            status=coupon.status,
            created_at=coupon.created_at,
        )


class CouponResponse(Envelope):
    coupon: CouponOut

    @classmethod
    def from_domain(cls, dom: Coupon) -> CouponResponse:
        return cls(coupon=CouponOut.of(dom))


class CouponListResponse(Envelope):
    coupons: list[CouponOut]

    @classmethod
    def from_domain(cls, dom: Sequence[Coupon]) -> CouponListResponse:
        return cls(coupons=[CouponOut.of(c) for c in dom])


class CouponPreviewResponse(Envelope):
    code: str
    discount_percentage: int
    discount: int
    final_total: int

    @classmethod
    def from_domain(cls, dom: CouponPreview) -> CouponPreviewResponse:
        return cls(
            code=dom.code,
            discount_percentage=dom.discount_percentage,
            discount=dom.discount,
            final_total=dom.final_total,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderItemIn(Schema):
    """Client prices are ignored; totals are recomputed from the catalog."""

    product_id: str
    quantity: int
    variant_label: str = ""


class CreateOrderRequest(UserScoped):
    items: list[OrderItemIn]
    shipping_address: dict[str, Any]
    payment_method: PaymentMethod
    coupon_code: str | None = None

    def to_domain(self) -> CreateOrder:
        return CreateOrder(
            CheckoutRequest(
                user_id=self.user_id,
                items=tuple(
                    RequestedLine(i.product_id.strip(), i.quantity, i.variant_label.strip()) for i in self.items
                ),
                shipping_address=ShippingAddress.from_mapping(self.shipping_address),
                payment_method=self.payment_method,
                coupon_code=self.coupon_code,
            )
        )


class ListOrdersRequest(UserScoped):
    include_all: bool = True
    include_online: bool = True
    include_cod: bool = True

    def to_domain(self) -> ListUserOrders:
        return ListUserOrders(self.user_id, self.include_all, self.include_online, self.include_cod)


class OrderDetailsRequest(UserScoped):
    id: str

    def to_domain(self) -> GetOrderDetails:
        return GetOrderDetails(self.user_id, self.id)


class ListHistoryRequest(UserScoped):
    def to_domain(self) -> ListOrderHistory:
        return ListOrderHistory(self.user_id)


class HistoryDetailsRequest(UserScoped):
    id: str

    def to_domain(self) -> GetOrderHistoryDetails:
        return GetOrderHistoryDetails(self.user_id, self.id)


class ArchiveOrderRequest(Schema):
    order_code: str
    status: OrderStatus

    def to_domain(self) -> ArchiveOrder:
        return ArchiveOrder(self.order_code.strip(), self.status)


class LineItemOut(Schema):
    product_id: str
    name: str
    variant_label: str
    price_at_add: int
    quantity: int


class OrderOut(Schema):
    id: str
    order_code: str
    items: list[LineItemOut]
    shipping_address: dict[str, Any]
    payment_method: PaymentMethod
    total_amount: int
    payment_status: str
    order_status: OrderStatus
    created_at: datetime
    completed_at: datetime | None
    is_history: bool

    @classmethod
    def of(cls, order: Order) -> OrderOut:
        return cls(
            id=order.id,
            order_code=order.order_code,
            items=[
                LineItemOut(
                    product_id=i.product_id,
                    name=i.name,
                    variant_label=i.variant_label,
                    price_at_add=i.price_at_add,
                    quantity=i.quantity,
                )
                for i in order.items
            ],
            shipping_address=order.shipping_address.as_record(),
            payment_method=order.payment_method,
            total_amount=order.total_amount,
            payment_status=order.payment_status.value,
            order_status=order.order_status,
            created_at=order.created_at,
            completed_at=order.completed_at,
            is_history=order.is_history,
        )


class OrderResponse(Envelope):
    order: OrderOut

    @classmethod
    def from_domain(cls, dom: Order) -> OrderResponse:
        return cls(order=OrderOut.of(dom))


class OrderListResponse(Envelope):
    orders: list[OrderOut]

    @classmethod
    def from_domain(cls, dom: Sequence[Order]) -> OrderListResponse:
        return cls(orders=[OrderOut.of(o) for o in dom])


class GatewayOrderOut(Schema):
    id: str
    amount: int
    currency: str


class CheckoutResponse(Envelope):
    """COD carries ``order``; ONLINE carries the pending id and the gateway order."""

    order: OrderOut | None = None
    pending_order_id: str | None = None
    razorpay_order: GatewayOrderOut | None = None

    @classmethod
    def from_domain(cls, dom: CheckoutOutcome) -> CheckoutResponse:
        match dom:
            case PlacedOrder(order=order):
                return cls(order=OrderOut.of(order))
            case AwaitingPayment(pending_order=pending, intent=intent):
                return cls(
                    pending_order_id=pending.id,
                    razorpay_order=GatewayOrderOut(id=intent.id, amount=intent.amount, currency=intent.currency),
                )
        raise TypeError(f"Unexpected checkout outcome: {dom!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Webhook
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentWebhook:
    """Signed gateway callback; the body must reach the verifier byte-for-byte."""

    @classmethod
    def from_raw(cls, body: bytes, headers: Mapping[str, str | None]) -> HandlePaymentWebhook:
        return HandlePaymentWebhook(body, headers.get(SIGNATURE_HEADER))


class WebhookResponse(Envelope):
    event: str
    action: str
    order_code: str | None = None

    @classmethod
    def from_domain(cls, dom: WebhookOutcome) -> WebhookResponse:
        return cls(
            event=dom.event,
            action=dom.action.value,
            order_code=dom.order.order_code if dom.order else None,
        )
