"""
Ops: data-driven dispatch with automatic DI.

Replaces match/case with declarative registration:
    from bazaar import ops as O

    @dataclass(frozen=True, slots=True)
    class GetProduct(O.Op[ProductView, ShopError]):
        product_id: str

    async def get_product(req: GetProduct, catalog: CatalogService) -> Result[ProductView, ShopError]:
        return await O.catching(catalog.get_product(req.product_id), ShopError)

    runner = O.ops().on(GetProduct, get_product).compile().inject(CatalogService, catalog)
    result = await runner.run(GetProduct("prd_1"))   # Ok(view) | Error(ProductNotFound)

The wire layer exposes a runner over HTTP; the CLI drives the same
runner directly.
"""

from bazaar.ops._dispatch import Op, OpsBuilder, Runner, catching, ops

__all__ = (
    "Op",
    "OpsBuilder",
    "Runner",
    "ops",
    "catching",
)
