from typing import List, Union

import requests

from ticketflow.core.config import ZOHO_ACCOUNT_ID, ZOHO_AUTH_TOKEN, ZOHO_USER
from ticketflow.core.logger import get_logger

logger = get_logger(__name__)

# Constants
ZOHO_API_BASE_URL = "https://mail.zoho.com/api/accounts"


def _address_list(addresses) -> str:
    """Zoho takes several recipients as one comma separated string."""
    if isinstance(addresses, (list, tuple)):
        return ",".join(address.strip() for address in addresses if address and address.strip())
    return (addresses or "").strip()


def send_email(
    to_email: Union[str, List[str]],
    subject: str,
    html_body: str = "",
    text_body: str = "",
    cc_email: Union[str, List[str]] = None,
):
    """
    Sends an email using Zoho Mail's REST API.

    Args:
        to_email: Recipient email address, or a list of addresses
        subject: Email subject
        html_body: HTML content (preferred when present)
        text_body: Plain text content, used when there is no HTML
        cc_email: Optional CC email address or list of addresses

    Returns:
        dict: {"success": True, "message_id": ...} or {"success": False, "error": ...}
    """
    to_email = _address_list(to_email)
    logger.info(f"Attempting to send email to {to_email} from {ZOHO_USER}")

    if not to_email:
        error_msg = "No recipient address configured"
        logger.warning(error_msg)
        return {"success": False, "error": error_msg}

    if not ZOHO_ACCOUNT_ID or not ZOHO_AUTH_TOKEN:
        error_msg = "Zoho API credentials not configured (ZOHO_ACCOUNT_ID or ZOHO_AUTH_TOKEN missing)"
        logger.error(error_msg)
        return {"success": False, "error": error_msg}

    headers = {
        "Authorization": f"Zoho-oauthtoken {ZOHO_AUTH_TOKEN}",
        "Accept": "application/json",
        "Content-Type": "application/json"
    }

    payload = {
        "fromAddress": ZOHO_USER,
        "toAddress": to_email,
        "subject": subject,
        "content": html_body or text_body,
        "mailFormat": "html" if html_body else "plaintext",
        "askReceipt": "no"
    }
    cc_email = _address_list(cc_email)
    if cc_email:
        payload["ccAddress"] = cc_email

    url = f"{ZOHO_API_BASE_URL}/{ZOHO_ACCOUNT_ID}/messages"

    try:
        response = requests.post(url, json=payload, headers=headers, timeout=10)

        if response.status_code == 200:
            data = response.json().get("data") or {}
            logger.info(f"Email sent successfully to {to_email}")
            return {"success": True, "message_id": data.get("messageId")}

        error_msg = f"Zoho API error: {response.status_code} - {response.text}"
        logger.error(error_msg)
        return {"success": False, "error": error_msg}

    except requests.exceptions.Timeout:
        error_msg = "Request timeout while connecting to Zoho Mail API"
        logger.error(error_msg)
        return {"success": False, "error": error_msg}
    except requests.exceptions.RequestException as e:
        error_msg = f"Request failed: {e}"
        logger.error(error_msg)
        return {"success": False, "error": error_msg}
