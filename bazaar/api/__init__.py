"""
API: operations, wire schemas and the FastAPI application.

    from bazaar.api import create_app

    app = create_app(settings, gateway=gateway)

    # or without HTTP:
    runner = wire_services(build_runner(), sessions, settings, gateway=gateway, notifier=notifier)
    result = await runner.run(GetCart("u1"))   # Ok(cart) | Error(ShopError)
"""

from bazaar.api._app import create_app, gateway_from_settings, wire_services
from bazaar.api._endpoints import build_application
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
    SweepPendingOrders,
    UpdateCart,
    UpdateDisplayOrder,
    UpdateProduct,
    VerifyCoupon,
    build_runner,
)

__all__ = (
    # App
    "create_app",
    "wire_services",
    "gateway_from_settings",
    "build_application",
    "build_runner",
    # Catalog
    "ListProducts",
    "GetProduct",
    "CreateProduct",
    "UpdateProduct",
    "DeleteProduct",
    "UpdateDisplayOrder",
    "ListProductReviews",
    "AddProductReview",
    # Cart
    "GetCart",
    "AddToCart",
    "UpdateCart",
    "ClearCart",
    # Coupons
    "CreateCoupon",
    "ListCoupons",
    "SetCouponStatus",
    "DeleteCoupon",
    "PreviewCoupon",
    "VerifyCoupon",
    # Orders
    "CreateOrder",
    "ListUserOrders",
    "GetOrderDetails",
    "ListOrderHistory",
    "GetOrderHistoryDetails",
    "ArchiveOrder",
    # Payments
    "HandlePaymentWebhook",
    "SweepPendingOrders",
)
