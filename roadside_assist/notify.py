import os
import logging

import africastalking


def send_sms(phone: str, message: str) -> bool:
    """Send one SMS through Africa's Talking. Failures are logged, never raised."""
    username = os.getenv("AT_USERNAME") or os.getenv("AFRICASTALKING_USERNAME")
    api_key = os.getenv("AT_API_KEY") or os.getenv("AFRICASTALKING_APIKEY")
    from_number = os.getenv("AT_FROM") or os.getenv("AFRICASTALKING_FROM")

    if not username or not api_key:
        logging.warning("Africa's Talking credentials missing; SMS to %s not sent", phone)
        return False

    try:
        africastalking.initialize(username, api_key)
        sms = africastalking.SMS
        kwargs = {"message": message, "recipients": [phone]}
        if from_number:
            kwargs["sender_id"] = from_number
        response = sms.send(**kwargs)
        logging.info("Africa's Talking SMS sent: %s", response)
        return True
    except Exception as e:
        logging.exception("Failed to send SMS via Africa's Talking: %s", e)
        return False


def notification_text(title: str, body) -> str:
    return f"{title}: {body}" if body else title
