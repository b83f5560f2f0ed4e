# Overview: Flask API routes for sales inquiries; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import sales_inquiry_service
from ..services.sales_inquiry_service import SalesInquiryError

sales_inquiries_bp = Blueprint("sales_inquiries", __name__, url_prefix="/api/sales-inquiries")


@sales_inquiries_bp.post("")
@require_auth
@require_capability("CREATE_SALES_INQUIRY")
def create_inquiry_route():
    payload = request.get_json(silent=True) or {}
    inquiry = sales_inquiry_service.create_inquiry(payload=payload, created_by=g.current_user)
    return ok(inquiry.to_dict(), 201)


@sales_inquiries_bp.get("")
@require_auth
def list_inquiries_route():
    query = sales_inquiry_service.inquiries_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        distributor_id=request.args.get("distributorId", type=int),
    )
    return paged(query, lambda i: i.to_dict())


@sales_inquiries_bp.get("/user")
@require_auth
def my_inquiries_route():
    query = sales_inquiry_service.inquiries_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        own_only=True,
    )
    return paged(query, lambda i: i.to_dict())


@sales_inquiries_bp.get("/<int:inquiry_id>")
@require_auth
def get_inquiry_route(inquiry_id: int):
    return ok(sales_inquiry_service.get_inquiry(inquiry_id, viewer=g.current_user).to_dict())


@sales_inquiries_bp.patch("/<int:inquiry_id>/comment")
@require_auth
@require_capability("COMMENT_SALES_INQUIRIES")
def comment_inquiry_route(inquiry_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        inquiry = sales_inquiry_service.add_manager_comment(
            inquiry_id, comment=payload.get("comment"), manager=g.current_user
        )
    except SalesInquiryError as e:
        return fail(str(e), 400)
    return ok(inquiry.to_dict())


@sales_inquiries_bp.patch("/<int:inquiry_id>")
@require_auth
@require_capability("UPDATE_SALES_INQUIRY_STATUS")
def update_inquiry_status_route(inquiry_id: int):
    """Body: {status: Processing | Completed | Rejected, notes?}"""
    payload = request.get_json(silent=True) or {}
    try:
        inquiry = sales_inquiry_service.update_status(inquiry_id, payload=payload, reviewer=g.current_user)
    except SalesInquiryError as e:
        return fail(str(e), 400)
    return ok(inquiry.to_dict())


@sales_inquiries_bp.patch("/<int:inquiry_id>/dispatch")
@require_auth
@require_capability("DISPATCH_SALES_INQUIRIES")
def dispatch_inquiry_route(inquiry_id: int):
    """Body: {dispatchDate?, vehicleId?, referenceNumber?, notes?}"""
    payload = request.get_json(silent=True) or {}
    try:
        inquiry = sales_inquiry_service.dispatch_inquiry(inquiry_id, payload=payload, godown=g.current_user)
    except SalesInquiryError as e:
        return fail(str(e), 400)
    return ok(inquiry.to_dict())


@sales_inquiries_bp.delete("/<int:inquiry_id>")
@require_auth
@require_capability("DELETE_SALES_INQUIRY")
def delete_inquiry_route(inquiry_id: int):
    sales_inquiry_service.delete_inquiry(inquiry_id, admin=g.current_user)
    return ok({}, message="Sales inquiry deleted")
