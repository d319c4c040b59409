# Overview: Service-layer operations for the game catalog; SKU lookup, creation and updates.

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Game
from ..errors import ValidationError, DuplicateBarcodeError, NotFoundError
from ..validation import (
    MAX_PRICE_CENTS,
    RELEASE_DATE_RE,
    IMAGE_URL_RE,
    coerce_bool,
    coerce_cents,
    coerce_int,
    optional_str,
    require_str,
    validate_barcode,
)
from .concurrency import lock_for_update
from .ledger_service import append_ledger_event


RATINGS = ("E", "E10+", "T", "M", "AO", "RP")

# Attributes an upsert may change on an existing SKU. Stock and cost basis
# only move through transaction lifecycles.
MUTABLE_FIELDS = (
    "title",
    "platforms",
    "rating",
    "description",
    "image_url",
    "category",
    "release_date",
    "price_cents",
    "sale_active",
    "sale_price_cents",
    "tradable",
    "rental_available",
    "rental_weekly_rate_cents",
)


def find_by_barcode(barcode: str) -> Game | None:
    return db.session.query(Game).filter_by(barcode=barcode).first()


def get_by_barcode(barcode: str) -> Game:
    game = find_by_barcode(barcode)
    if not game:
        raise NotFoundError("Game", barcode)
    return game


def get_for_update(barcode: str) -> Game | None:
    """Row-locked read for a later write (None when the SKU does not exist)."""
    return lock_for_update(db.session.query(Game).filter_by(barcode=barcode)).first()


def effective_price_cents(game: Game) -> int:
    """List price, or the sale price while a sale is active."""
    if game.sale_active and game.sale_price_cents is not None:
        return game.sale_price_cents
    return game.price_cents


def _clean_platforms(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValidationError("platforms must be a list", details={"field": "platforms"})
    return [str(p).strip() for p in value if str(p).strip()]


def _clean_attributes(payload: dict, *, partial: bool) -> dict:
    """
    Normalize catalog attributes from a request payload.

    partial=True only returns the keys present in the payload (updates);
    otherwise required fields must be there (creation).
    """
    attrs: dict = {}

    if not partial or "title" in payload:
        attrs["title"] = require_str(payload, "title", max_length=200, label="Game title")

    if not partial or "price_cents" in payload:
        attrs["price_cents"] = coerce_cents(payload.get("price_cents"), "price_cents", positive=True)

    if "platforms" in payload or not partial:
        attrs["platforms"] = _clean_platforms(payload.get("platforms"))

    if "rating" in payload:
        rating = optional_str(payload, "rating", max_length=8)
        if rating is not None and rating not in RATINGS:
            raise ValidationError(
                f"rating must be one of: {', '.join(RATINGS)}", details={"field": "rating"}
            )
        attrs["rating"] = rating

    if "description" in payload:
        attrs["description"] = optional_str(payload, "description")

    if "image_url" in payload:
        image_url = optional_str(payload, "image_url", max_length=500)
        if image_url is not None and not IMAGE_URL_RE.match(image_url):
            raise ValidationError(
                "Image URL must be a valid image URL or local path", details={"field": "image_url"}
            )
        attrs["image_url"] = image_url

    if "category" in payload:
        attrs["category"] = optional_str(payload, "category", max_length=64)

    if "release_date" in payload:
        release_date = optional_str(payload, "release_date", max_length=10)
        if release_date is not None and not RELEASE_DATE_RE.match(release_date):
            raise ValidationError(
                "Release date must be in YYYY-MM-DD format", details={"field": "release_date"}
            )
        attrs["release_date"] = release_date

    if "sale_active" in payload:
        attrs["sale_active"] = coerce_bool(payload.get("sale_active"))

    if "sale_price_cents" in payload:
        raw = payload.get("sale_price_cents")
        attrs["sale_price_cents"] = None if raw is None else coerce_cents(raw, "sale_price_cents", positive=True)

    if "tradable" in payload:
        attrs["tradable"] = coerce_bool(payload.get("tradable"), default=True)

    if "rental_available" in payload:
        attrs["rental_available"] = coerce_bool(payload.get("rental_available"))

    if "rental_weekly_rate_cents" in payload:
        raw = payload.get("rental_weekly_rate_cents")
        attrs["rental_weekly_rate_cents"] = (
            None if raw is None else coerce_cents(raw, "rental_weekly_rate_cents")
        )

    return attrs


def _check_sale_price(sale_active: bool, sale_price_cents: int | None, price_cents: int) -> None:
    if not sale_active:
        return
    if sale_price_cents is None:
        raise ValidationError(
            "Sale price is required when the sale is active", details={"field": "sale_price_cents"}
        )
    if sale_price_cents >= price_cents:
        raise ValidationError(
            "Sale price must be lower than the regular price", details={"field": "sale_price_cents"}
        )


def validate_new_sku_details(details, *, barcode: str | None = None) -> dict:
    """
    Validate the catalog details carried by a line item that introduces a SKU.

    Returns normalized attributes (including barcode) ready for
    create_from_details().
    """
    if not isinstance(details, dict):
        raise ValidationError(
            "new_sku_details are required for new games", details={"field": "new_sku_details"}
        )
    merged = dict(details)
    if barcode is not None:
        merged.setdefault("barcode", barcode)
    attrs = _clean_attributes(merged, partial=False)
    attrs["barcode"] = validate_barcode(merged.get("barcode"))
    _check_sale_price(attrs.get("sale_active", False), attrs.get("sale_price_cents"), attrs["price_cents"])
    return attrs


def create_from_details(
    details: dict,
    *,
    stock_with_case: int = 0,
    stock_cartridge_only: int = 0,
    cost_basis_cents: int = 0,
) -> Game:
    """
    Insert a new SKU. Flushes so a concurrent insert surfaces as IntegrityError
    inside the caller's unit of work.
    """
    attrs = validate_new_sku_details(details)
    barcode = attrs["barcode"]
    if find_by_barcode(barcode):
        raise DuplicateBarcodeError(barcode)

    game = Game(
        stock_with_case=stock_with_case,
        stock_cartridge_only=stock_cartridge_only,
        cost_basis_cents=cost_basis_cents,
        number_of_sold=0,
        **attrs,
    )
    db.session.add(game)
    db.session.flush()

    append_ledger_event(
        event_type="catalog.created",
        event_category="catalog",
        entity_type="game",
        entity_id=game.id,
        barcode=game.barcode,
        note=f"Game {game.barcode} created",
        payload={
            "stock_with_case": stock_with_case,
            "stock_cartridge_only": stock_cartridge_only,
            "cost_basis_cents": cost_basis_cents,
        },
    )
    return game


def create_game(payload: dict) -> Game:
    """Catalog API creation: optional opening stock and cost basis."""
    stock_with_case = coerce_int(payload.get("stock_with_case", 0), "stock_with_case", minimum=0)
    stock_cartridge_only = coerce_int(
        payload.get("stock_cartridge_only", 0), "stock_cartridge_only", minimum=0
    )
    cost_basis_cents = coerce_int(
        payload.get("cost_basis_cents", 0), "cost_basis_cents", minimum=0, maximum=MAX_PRICE_CENTS
    )
    try:
        game = create_from_details(
            payload,
            stock_with_case=stock_with_case,
            stock_cartridge_only=stock_cartridge_only,
            cost_basis_cents=cost_basis_cents,
        )
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same barcode
        db.session.rollback()
        raise DuplicateBarcodeError(str(payload.get("barcode")))
    return game


def upsert(barcode: str, payload: dict) -> tuple[Game, bool]:
    """
    Update the mutable attributes of an existing SKU, or create it.

    Returns (game, created).
    """
    barcode = validate_barcode(barcode)
    game = get_for_update(barcode)
    if game is None:
        merged = dict(payload)
        merged["barcode"] = barcode
        return create_game(merged), True

    attrs = _clean_attributes(payload, partial=True)
    sale_active = attrs.get("sale_active", game.sale_active)
    sale_price = attrs.get("sale_price_cents", game.sale_price_cents)
    price = attrs.get("price_cents", game.price_cents)
    _check_sale_price(sale_active, sale_price, price)

    changed = {}
    for field in MUTABLE_FIELDS:
        if field in attrs and getattr(game, field) != attrs[field]:
            changed[field] = attrs[field]
            setattr(game, field, attrs[field])

    if changed:
        db.session.flush()
        append_ledger_event(
            event_type="catalog.updated",
            event_category="catalog",
            entity_type="game",
            entity_id=game.id,
            barcode=game.barcode,
            note=f"Game {game.barcode} updated",
            payload={"fields": sorted(changed)},
        )
    db.session.commit()
    return game, False


def list_games(
    *,
    search: str | None = None,
    platform: str | None = None,
    in_stock_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Game], int]:
    query = db.session.query(Game)

    if search:
        like = f"%{search}%"
        query = query.filter(or_(Game.title.ilike(like), Game.barcode.ilike(like)))

    if in_stock_only:
        query = query.filter(Game.total_available_stock > 0)

    query = query.order_by(Game.title.asc(), Game.id.asc())
    start = (page - 1) * limit

    if not platform:
        total = query.count()
        return query.offset(start).limit(limit).all(), total

    # platforms is a JSON list; filter in Python to stay dialect-neutral
    games = [g for g in query.all() if platform in (g.platforms or [])]
    return games[start:start + limit], len(games)
