"""Rental agreement PDF for a booking."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from io import BytesIO

from django.utils import timezone
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from .models import Booking

TERMS = (
    "The renter will return the vehicle on or before the end date in the same condition.",
    "The renter is responsible for fuel, tolls, parking fees and traffic violations.",
    "The remaining balance is due no later than the return of the vehicle.",
    "Late returns are charged pro-rata at the daily rate in hourly increments.",
    "Both parties agree to resolve disputes through the platform report process first.",
)


def _format_dt(value: datetime | None) -> str:
    if not value:
        return "N/A"
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return value.strftime("%b %d, %Y %I:%M %p")


def _format_currency(amount: Decimal | None) -> str:
    return f"PHP {Decimal(amount or 0):,.2f}"


def _party(user) -> tuple[str, str, str]:
    if user is None:
        return "N/A", "N/A", "N/A"
    name = user.get_full_name() or user.username
    return name, user.email or "N/A", getattr(user, "phone", "") or "N/A"


def render_booking_contract_pdf(booking: Booking) -> bytes:
    """
    Render the rental agreement.

    Pure: only reads the booking and its related vehicle and users.
    """
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    pdf.setTitle(f"Rental Agreement #{booking.pk}")

    width, height = letter
    margin = 0.9 * inch
    y = height - margin

    def new_section(title: str, *, spacing: float = 0.22) -> None:
        nonlocal y
        pdf.setFont("Helvetica-Bold", 13)
        pdf.drawString(margin, y, title)
        y -= spacing * inch

    def draw_row(label: str, value: str, *, label_width: float = 2.0) -> None:
        nonlocal y
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(margin, y, label)
        pdf.setFont("Helvetica", 10)
        pdf.drawString(margin + label_width * inch, y, value)
        y -= 0.18 * inch

    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawString(margin, y, "Vehicle Rental Agreement")
    pdf.setFont("Helvetica", 10)
    pdf.drawString(margin, y - 0.22 * inch, f"Booking #{booking.pk}")
    pdf.drawString(
        width - margin - 2.4 * inch, y, f"Generated: {_format_dt(timezone.now())}"
    )
    y -= 0.55 * inch
    pdf.line(margin, y, width - margin, y)
    y -= 0.25 * inch

    vehicle = booking.vehicle
    new_section("Vehicle")
    draw_row("Vehicle", f"{vehicle.make} {vehicle.model}".strip())
    draw_row("Year", str(vehicle.year or "N/A"))
    draw_row("Pickup location", vehicle.location or "N/A")
    y -= 0.1 * inch

    for title, user in (("Owner", booking.owner), ("Renter", booking.renter)):
        name, email, phone = _party(user)
        new_section(title)
        draw_row("Name", name)
        draw_row("Email", email)
        draw_row("Phone", phone)
        y -= 0.1 * inch

    new_section("Rental period")
    draw_row("Start", _format_dt(booking.start_date))
    draw_row("End", _format_dt(booking.end_date))
    y -= 0.1 * inch

    new_section("Payment")
    draw_row("Total cost", _format_currency(booking.total_cost))
    draw_row("Downpayment", _format_currency(booking.down_payment))
    draw_row("Amount paid", _format_currency(booking.amount_paid))
    draw_row("Remaining balance", _format_currency(booking.remaining_balance))
    draw_row("Status", booking.get_payment_status_display())
    y -= 0.1 * inch

    new_section("Terms")
    pdf.setFont("Helvetica", 9)
    for index, term in enumerate(TERMS, start=1):
        pdf.drawString(margin, y, f"{index}. {term}")
        y -= 0.18 * inch

    y -= 0.5 * inch
    pdf.line(margin, y, margin + 2.5 * inch, y)
    pdf.line(width - margin - 2.5 * inch, y, width - margin, y)
    pdf.setFont("Helvetica", 9)
    pdf.drawString(margin, y - 0.15 * inch, "Owner signature")
    pdf.drawString(width - margin - 2.5 * inch, y - 0.15 * inch, "Renter signature")

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
