"""Store shipping router: quotes, zones and address checks."""

from fastapi import APIRouter, Depends
from libs.common.errors import InvalidRequestError, NotFoundError
from services.store_service.schemas import (
    AddressValidationResponse,
    ServiceabilityResponse,
    ShippingAddress,
    ShippingCalculateRequest,
    ShippingConfigResponse,
    ShippingInfoResponse,
    ShippingQuoteResponse,
    ShippingZoneResponse,
)
from services.store_service.services.shipping import (
    UNSERVICEABLE_MESSAGE,
    ShippingCalculator,
    get_shipping_calculator,
)

router = APIRouter(prefix="/shipping", tags=["shipping"])


def _require_shippable(calculator: ShippingCalculator, address: ShippingAddress) -> None:
    validation = calculator.validate_address(address)
    if not validation.is_valid:
        raise InvalidRequestError(
            "Invalid shipping address", details={"errors": validation.errors}
        )
    if not calculator.is_serviceable(address):
        raise InvalidRequestError(UNSERVICEABLE_MESSAGE)


@router.post("/calculate", response_model=ShippingQuoteResponse)
async def calculate_shipping(
    payload: ShippingCalculateRequest,
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
):
    """Quote shipping cost, delivery window and courier for an address."""
    _require_shippable(calculator, payload.address)
    quote = calculator.calculate(payload.address, payload.order_total)
    return ShippingQuoteResponse.model_validate(quote)


@router.post("/info", response_model=ShippingInfoResponse)
async def shipping_info(
    payload: ShippingCalculateRequest,
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
):
    """Display-ready shipping summary for cart and checkout pages."""
    _require_shippable(calculator, payload.address)
    info = calculator.shipping_info(payload.address, payload.order_total)
    return ShippingInfoResponse.model_validate(info)


@router.get("/zones", response_model=list[ShippingZoneResponse])
async def list_zones(calculator: ShippingCalculator = Depends(get_shipping_calculator)):
    return [ShippingZoneResponse.model_validate(zone) for zone in calculator.list_zones()]


@router.get("/zones/{zone_id}", response_model=ShippingZoneResponse)
async def get_zone(
    zone_id: str, calculator: ShippingCalculator = Depends(get_shipping_calculator)
):
    zone = calculator.get_zone(zone_id)
    if zone is None:
        raise NotFoundError("Shipping zone not found")
    return ShippingZoneResponse.model_validate(zone)


@router.post("/detect-zone", response_model=ShippingZoneResponse)
async def detect_zone(
    address: ShippingAddress,
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
):
    return ShippingZoneResponse.model_validate(calculator.detect_zone(address))


@router.post("/validate-address", response_model=AddressValidationResponse)
async def validate_address(
    address: ShippingAddress,
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
):
    validation = calculator.validate_address(address)
    return AddressValidationResponse(
        is_valid=validation.is_valid, errors=validation.errors
    )


@router.post("/check-serviceability", response_model=ServiceabilityResponse)
async def check_serviceability(
    address: ShippingAddress,
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
):
    zone = calculator.detect_zone(address)
    return ServiceabilityResponse(
        serviceable=zone.is_active,
        zone_id=zone.id,
        zone_name=zone.name,
        message=None if zone.is_active else UNSERVICEABLE_MESSAGE,
    )


@router.get("/config", response_model=ShippingConfigResponse)
async def shipping_config(
    calculator: ShippingCalculator = Depends(get_shipping_calculator),
):
    """Public shipping constants (couriers, calendar, tax rate)."""
    config = calculator.config
    return ShippingConfigResponse(
        tax_rate=config.tax_rate,
        shipping_gst_rate=config.shipping_gst_rate,
        domestic_couriers=list(config.domestic_couriers),
        international_couriers=list(config.international_couriers),
        processing_days_min=config.processing_days_min,
        processing_days_max=config.processing_days_max,
        order_cutoff_time=config.order_cutoff_time,
        working_days=sorted(config.working_days),
        holidays=sorted(config.holidays),
        countries=dict(config.country_names),
    )
