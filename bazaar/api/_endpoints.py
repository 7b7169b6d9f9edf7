"""HTTP exposure of the API operations."""

from __future__ import annotations

from bazaar.api import _schemas as s
from bazaar.ops import Runner
from bazaar.payments import SIGNATURE_HEADER
from bazaar.wire import (
    Application,
    HTTPRouteTrigger,
    RawBodyCodec,
    RequestResponseCodec,
    endpoint,
    user_route,
)


def _rrc(request: type, response: type) -> RequestResponseCodec:
    return RequestResponseCodec(request, response)


def build_application(runner: Runner) -> Application:
    products = (
        endpoint(runner)
        .expose(HTTPRouteTrigger("GET", "/api/products"), _rrc(s.ListProductsRequest, s.ProductPageResponse))
        .expose(HTTPRouteTrigger("GET", "/api/products/detail"), _rrc(s.GetProductRequest, s.ProductResponse))
        .expose(
            HTTPRouteTrigger("POST", "/api/products", status_code=201),
            _rrc(s.CreateProductRequest, s.ProductResponse),
        )
        .expose(HTTPRouteTrigger("PUT", "/api/products"), _rrc(s.UpdateProductRequest, s.ProductResponse))
        .expose(HTTPRouteTrigger("DELETE", "/api/products"), _rrc(s.DeleteProductRequest, s.DeletedResponse))
        .expose(
            HTTPRouteTrigger("PUT", "/api/products/display-order"),
            _rrc(s.DisplayOrderRequest, s.DisplayOrderResponse),
        )
        .expose(
            HTTPRouteTrigger("GET", "/api/products/reviews"), _rrc(s.ListReviewsRequest, s.ReviewListResponse)
        )
        .expose(
            user_route("POST", "/api/products/reviews", status_code=201),
            _rrc(s.AddReviewRequest, s.ReviewResponse),
        )
    )

    cart = (
        endpoint(runner)
        .expose(user_route("GET", "/api/cart"), _rrc(s.GetCartRequest, s.CartResponse))
        .expose(user_route("POST", "/api/cart"), _rrc(s.AddToCartRequest, s.CartResponse))
        .expose(user_route("PUT", "/api/cart"), _rrc(s.UpdateCartRequest, s.CartResponse))
        .expose(user_route("DELETE", "/api/cart"), _rrc(s.ClearCartRequest, s.CartResponse))
    )

    coupons = (
        endpoint(runner)
        .expose(
            HTTPRouteTrigger("POST", "/api/coupons", status_code=201),
            _rrc(s.CreateCouponRequest, s.CouponResponse),
        )
        .expose(HTTPRouteTrigger("GET", "/api/coupons"), _rrc(s.ListCouponsRequest, s.CouponListResponse))
        .expose(HTTPRouteTrigger("PUT", "/api/coupons/status"), _rrc(s.CouponStatusRequest, s.CouponResponse))
        .expose(HTTPRouteTrigger("DELETE", "/api/coupons"), _rrc(s.DeleteCouponRequest, s.DeletedResponse))
        .expose(user_route("POST", "/api/coupons/apply"), _rrc(s.PreviewCouponRequest, s.CouponPreviewResponse))
    )

    orders = (
        endpoint(runner)
        .expose(user_route("POST", "/api/orders/verify-coupon"), _rrc(s.VerifyCouponRequest, s.CouponResponse))
        .expose(user_route("POST", "/api/orders", status_code=201), _rrc(s.CreateOrderRequest, s.CheckoutResponse))
        .expose(user_route("GET", "/api/orders"), _rrc(s.ListOrdersRequest, s.OrderListResponse))
        .expose(user_route("GET", "/api/orders/detail"), _rrc(s.OrderDetailsRequest, s.OrderResponse))
        .expose(user_route("GET", "/api/orders/history"), _rrc(s.ListHistoryRequest, s.OrderListResponse))
        .expose(user_route("GET", "/api/orders/history/detail"), _rrc(s.HistoryDetailsRequest, s.OrderResponse))
        .expose(HTTPRouteTrigger("POST", "/api/orders/archive"), _rrc(s.ArchiveOrderRequest, s.OrderResponse))
    )

    webhook = endpoint(runner).expose(
        HTTPRouteTrigger("POST", "/razorpay-webhook", frozenset({SIGNATURE_HEADER})),
        RawBodyCodec(s.PaymentWebhook, s.WebhookResponse),
    )

    return Application().mount(products, cart, coupons, orders, webhook)


__all__ = ("build_application",)
