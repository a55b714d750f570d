"""API endpoints for the tariff catalog."""

from fastapi import APIRouter, Depends

from src.modules.tariffs.catalog import TariffCatalog, get_tariff_catalog
from src.shared.schemas.base import ApiResponse, BaseSchema

router = APIRouter(prefix="/tariffs", tags=["Tariffs"])


class TariffResponse(BaseSchema):
    code: str
    original_debt: int


@router.get("", response_model=ApiResponse[list[TariffResponse]])
async def list_tariffs(catalog: TariffCatalog = Depends(get_tariff_catalog)):
    """List tariff codes with the debt each one fixes."""
    return ApiResponse(
        data=[TariffResponse(code=code, original_debt=debt) for code, debt in catalog.items()]
    )
