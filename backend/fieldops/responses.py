# Overview: JSON response envelope helpers ({success, data|error, ...}).

from __future__ import annotations

from flask import jsonify, request


def ok(data=None, status: int = 200, **extra):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def fail(error: str, status: int = 400, **extra):
    body = {"success": False, "error": error}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status


def paginate(query, *, page: int | None, limit: int | None, default_limit: int = 10, max_limit: int = 100):
    """
    Apply offset pagination to a SQLAlchemy query.

    Returns (rows, total, pagination_dict) where pagination_dict matches
    {page, limit, totalPages, totalItems, hasNextPage, hasPrevPage}.
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    limit = min(limit, max_limit)

    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = (total + limit - 1) // limit if total else 0

    return rows, total, {
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "totalItems": total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def paged(query, serialize, *, default_limit: int = 10):
    """Paginate by ?page=&limit= and answer {success, count, total, pagination, data}."""
    rows, total, pagination = paginate(
        query,
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
        default_limit=default_limit,
    )
    return ok([serialize(row) for row in rows], count=len(rows), total=total, pagination=pagination)
