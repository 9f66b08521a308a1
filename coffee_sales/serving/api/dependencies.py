"""
FastAPI Dependencies
"""

from fastapi import Request

from coffee_sales.services import CoffeeSalesServices


def get_services(request: Request) -> CoffeeSalesServices:
    """
    Services attached to the running application.

    Use this in route handlers:

    Example:
        @router.get("/items")
        def get_items(services: CoffeeSalesServices = Depends(get_services)):
            ...
    """
    return request.app.state.services
