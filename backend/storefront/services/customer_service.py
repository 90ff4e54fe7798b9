# Overview: Service-layer operations for customer accounts; encapsulates business logic and database work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer
from storefront.validation import ValidationError, clean_text


GUEST_HASH_PREFIX = "GUEST_"
PASSWORD_HASH_LENGTH = 60


def guest_password_placeholder() -> str:
    """
    Placeholder for the 60-char password column on guest accounts.

    It is not a bcrypt hash, so no password ever verifies against it.
    Guests set a real password on first login.
    """
    stamp = str(int(time.time() * 1000))
    return (GUEST_HASH_PREFIX + stamp).ljust(PASSWORD_HASH_LENGTH, "X")[:PASSWORD_HASH_LENGTH]


def _normalize_email(email) -> str | None:
    email = clean_text(email)
    return email.lower() if email else None


def resolve_customer(customer_info: dict) -> Customer:
    """
    Find or create the customer account for a checkout.

    Lookup order: email, then phone. A customer found by phone whose email
    changed gets the new email, name and address; if that update fails (the
    email belongs to someone else) the existing record is used unchanged.
    Otherwise a guest account is created.

    Raises:
        ValidationError: missing name/email, or the account cannot be created
    """
    if not isinstance(customer_info, dict):
        raise ValidationError("customerInfo must be an object")

    name = clean_text(customer_info.get("name"))
    email = _normalize_email(customer_info.get("email"))
    phone = clean_text(customer_info.get("phone"))
    address = clean_text(customer_info.get("address"))

    if not name or not email:
        raise ValidationError("customerInfo.name and customerInfo.email are required")

    customer = db.session.query(Customer).filter_by(email=email).first()
    if customer:
        return customer

    if phone:
        customer = db.session.query(Customer).filter_by(phone=phone).first()
        if customer and customer.email != email:
            customer = _reconcile_email(customer, name=name, email=email, address=address)
        if customer:
            return customer

    return _create_guest(name=name, email=email, phone=phone, address=address)


def _reconcile_email(customer: Customer, *, name: str, email: str, address: str | None) -> Customer:
    customer_id = customer.id
    try:
        customer.email = email
        customer.full_name = name
        customer.address = address or customer.address
        db.session.commit()
        return customer
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Could not move customer %s to email %s, using existing record: %s",
            customer_id, email, exc.orig,
        )
        return db.session.get(Customer, customer_id)


def _create_guest(*, name: str, email: str, phone: str | None, address: str | None) -> Customer:
    customer = Customer(
        full_name=name,
        email=email,
        phone=phone,
        address=address,
        password_hash=guest_password_placeholder(),
    )
    db.session.add(customer)
    try:
        db.session.commit()
        return customer
    except IntegrityError as exc:
        db.session.rollback()
        if not phone:
            raise ValidationError(f"Failed to create customer account: {exc.orig}")

    # Phone was taken between lookup and insert
    current_app.logger.warning("Phone number %s already exists, reusing that customer", phone)
    customer = db.session.query(Customer).filter_by(phone=phone).first()
    if customer is None:
        raise ValidationError(
            "Failed to create customer account: Phone number already exists but customer not found"
        )

    customer.full_name = name
    customer.email = email
    customer.address = address or customer.address
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError(f"Failed to update customer account: {exc.orig}")
    return customer
