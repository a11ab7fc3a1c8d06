"""
购物车路由模块
"""

from fastapi import APIRouter, Depends, status

from ..deps import get_services
from ...core.error_handler import create_success_response
from ...core.security import get_current_principal
from ...models.user import Principal
from ...schemas.cart import AddCartItemRequest, UpdateCartItemRequest
from ...services import ServiceRegistry

router = APIRouter()


@router.get("")
def get_cart(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """获取购物车及合计"""
    return create_success_response(services.carts.get_cart(principal.user_id))


@router.delete("")
def clear_cart(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    services.carts.clear(principal.user_id)
    return create_success_response(services.carts.get_cart(principal.user_id))


@router.get("/count")
def get_cart_count(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response({"count": services.carts.get_item_count(principal.user_id)})


@router.post("/items", status_code=status.HTTP_201_CREATED)
def add_cart_item(
    req: AddCartItemRequest,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """加入购物车，同一菜品累加数量"""
    cart = services.carts.add_item(principal.user_id, req.menu_item_id, req.quantity)
    return create_success_response(cart, 201)


@router.put("/items/{line_id}")
def update_cart_item(
    line_id: str,
    req: UpdateCartItemRequest,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """修改数量，<= 0 时删除该行"""
    return create_success_response(
        services.carts.update_line(principal.user_id, line_id, req.quantity)
    )


@router.delete("/items/{line_id}")
def remove_cart_item(
    line_id: str,
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    return create_success_response(services.carts.remove_line(principal.user_id, line_id))


@router.post("/sync-prices")
def sync_cart_prices(
    principal: Principal = Depends(get_current_principal),
    services: ServiceRegistry = Depends(get_services),
):
    """把价格快照同步为当前菜品价格"""
    return create_success_response(services.carts.sync_prices(principal.user_id))
