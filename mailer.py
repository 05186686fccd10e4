"""
Outgoing email via resend.

Every sender returns (ok, error) and never raises, so callers can treat mail
as a best-effort side effect of the request.
"""
import logging
from typing import Dict, Optional, Tuple

import resend

from config import ADMIN_EMAIL, MAIL_FROM, PUBLIC_BASE_URL, RESEND_API_KEY, STORE_NAME
from schemas import LANGUAGES

logger = logging.getLogger(__name__)

VERIFICATION_TEXT: Dict[str, Dict[str, str]] = {
    "de": {
        "subject": "Bestätigen Sie Ihre E-Mail-Adresse",
        "greeting": "Hallo {username},",
        "message": "Vielen Dank für Ihre Registrierung bei Kerzenwelt by Dani. Bitte bestätigen Sie Ihre E-Mail-Adresse, um Ihre Registrierung abzuschließen.",
        "button": "E-Mail bestätigen",
        "expires": "Dieser Link ist 24 Stunden gültig.",
    },
    "hr": {
        "subject": "Potvrdite svoju e-mail adresu",
        "greeting": "Pozdrav {username},",
        "message": "Hvala što ste se registrirali na Kerzenwelt by Dani. Molimo potvrdite svoju e-mail adresu kako biste završili registraciju.",
        "button": "Potvrdi e-mail",
        "expires": "Ova veza vrijedi 24 sata.",
    },
    "en": {
        "subject": "Verify Your Email Address",
        "greeting": "Hello {username},",
        "message": "Thank you for registering with Kerzenwelt by Dani. Please verify your email address to complete your registration.",
        "button": "Verify email",
        "expires": "This link is valid for 24 hours.",
    },
    "it": {
        "subject": "Conferma il tuo indirizzo email",
        "greeting": "Ciao {username},",
        "message": "Grazie per esserti registrato su Kerzenwelt by Dani. Conferma il tuo indirizzo email per completare la registrazione.",
        "button": "Conferma email",
        "expires": "Questo link è valido per 24 ore.",
    },
    "sl": {
        "subject": "Potrdite svoj e-poštni naslov",
        "greeting": "Pozdravljeni {username},",
        "message": "Hvala za registracijo pri Kerzenwelt by Dani. Prosimo, potrdite svoj e-poštni naslov za dokončanje registracije.",
        "button": "Potrdi e-pošto",
        "expires": "Ta povezava je veljavna 24 ur.",
    },
}

WELCOME_TEXT: Dict[str, Dict[str, str]] = {
    "de": {
        "subject": "Willkommen zum Kerzenwelt by Dani Newsletter!",
        "body": "Vielen Dank für Ihre Anmeldung zu unserem Newsletter! Verwenden Sie den Code {code} für 10% Rabatt auf Ihre erste Bestellung.",
    },
    "hr": {
        "subject": "Dobrodošli na Kerzenwelt by Dani newsletter!",
        "body": "Hvala vam na pretplati na naš newsletter! Koristite kod {code} za 10% popusta na vašu prvu narudžbu.",
    },
    "en": {
        "subject": "Welcome to Kerzenwelt by Dani newsletter!",
        "body": "Thank you for subscribing to our newsletter! Use code {code} for 10% off your first order.",
    },
    "it": {
        "subject": "Benvenuto alla newsletter di Kerzenwelt by Dani!",
        "body": "Grazie per esserti iscritto alla nostra newsletter! Utilizza il codice {code} per ottenere il 10% di sconto sul tuo primo ordine.",
    },
    "sl": {
        "subject": "Dobrodošli v Kerzenwelt by Dani newsletter!",
        "body": "Hvala, ker ste se naročili na naš newsletter! Uporabite kodo {code} za 10% popusta pri prvem naročilu.",
    },
}


def _language(language: Optional[str]) -> str:
    return language if language in LANGUAGES else "de"


def is_configured() -> bool:
    return bool(RESEND_API_KEY)


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    if not is_configured():
        logger.info("Email to %s skipped, RESEND_API_KEY not set", to)
        return False, "Resend API key is not configured."

    payload: Dict[str, object] = {
        "from": MAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": html,
    }
    if text:
        payload["text"] = text

    resend.api_key = RESEND_API_KEY
    try:
        response = resend.Emails.send(payload)
    except Exception as exc:
        logger.error("Email to %s failed: %s", to, exc)
        return False, str(exc)

    if not isinstance(response, dict) or not response.get("id"):
        logger.error("Unexpected resend response for %s: %s", to, response)
        return False, str(response)
    return True, None


def verification_link(token: str) -> str:
    return f"{PUBLIC_BASE_URL}/verify-email?token={token}"


def build_verification_email(username: str, token: str, language: Optional[str] = None) -> Tuple[str, str, str]:
    t = VERIFICATION_TEXT[_language(language)]
    link = verification_link(token)
    greeting = t["greeting"].format(username=username)
    html = f"""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #D4AF37;">{STORE_NAME}</h1>
  <h2>{t["subject"]}</h2>
  <p>{greeting}</p>
  <p>{t["message"]}</p>
  <p><a href="{link}" style="background-color: #D4AF37; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px;">{t["button"]}</a></p>
  <p style="color: #666; font-size: 13px;">{t["expires"]}</p>
</div>"""
    text = f"{greeting}\n\n{t['message']}\n\n{link}\n\n{t['expires']}"
    return t["subject"], html, text


def send_verification_email(email: str, username: str, token: str, language: Optional[str] = None):
    subject, html, text = build_verification_email(username, token, language)
    return send_email(email, subject, html, text)


def send_subscription_email(email: str, discount_code: str, language: Optional[str] = None):
    t = WELCOME_TEXT[_language(language)]
    body = t["body"].format(code=discount_code)
    html = f"""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1 style="color: #D4AF37;">{STORE_NAME}</h1>
  <p>{body}</p>
  <div style="background-color: #f0f0f0; padding: 15px; text-align: center; font-size: 20px; font-weight: bold; letter-spacing: 2px; margin: 20px 0;">
    {discount_code}
  </div>
  <p>Daniela</p>
</div>"""
    return send_email(email, t["subject"], html, body)


def send_new_order_notification(order: dict, items: list):
    rows = "".join(
        f"<tr><td>{i.get('product_name') or i.get('product_id')}</td><td>{i['quantity']}</td>"
        f"<td>{float(i['price']):.2f} €</td></tr>"
        for i in items
    )
    html = f"""<div style="font-family: Arial, sans-serif;">
  <h2>Nova narudžba #{order['number']}</h2>
  <p>Način plaćanja: {order.get('payment_method')} ({order.get('payment_status')})</p>
  <table cellpadding="4">{rows}</table>
  <p>Dostava: {float(order.get('shipping_cost') or 0):.2f} €<br>
  Popust: {float(order.get('discount_amount') or 0):.2f} €<br>
  <strong>Ukupno: {float(order['total']):.2f} €</strong></p>
  <p>{order.get('shipping_address') or ''}, {order.get('shipping_postal_code') or ''} {order.get('shipping_city') or ''}, {order.get('shipping_country') or ''}</p>
</div>"""
    return send_email(ADMIN_EMAIL, f"{STORE_NAME}: nova narudžba #{order['number']}", html)


def send_invoice_generated_notification(order: dict, invoice_id: str):
    link = f"{PUBLIC_BASE_URL}/admin/invoices/{invoice_id}"
    html = f"""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #D4AF37;">Automatski kreiran račun na {STORE_NAME}</h2>
  <p>Automatski je kreiran novi račun za narudžbu #{order['number']}.</p>
  <p><a href="{link}" style="background-color: #D4AF37; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Pregledaj račun</a></p>
</div>"""
    return send_email(ADMIN_EMAIL, f"Novi račun kreiran - {STORE_NAME}", html)
