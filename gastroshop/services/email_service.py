"""Сервис отправки писем.

Отправляет покупателю письмо о смене статуса платежа.
SMTP-клиент стандартной библиотеки блокирующий, поэтому отправка
выполняется в отдельном потоке через asyncio.to_thread.

Если SMTP не настроен (EMAIL__SMTP_HOST не указан), письмо не отправляется,
а в лог пишется, кому и о чём оно было бы отправлено.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from html import escape

from gastroshop.config.models import EmailSettings
from gastroshop.db.models.payment import PaymentStatus
from gastroshop.utils.logging import get_logger
from gastroshop.utils.money import format_minor_units

logger = get_logger(__name__)

# Таймаут SMTP-соединения в секундах
SMTP_TIMEOUT = 30.0

# Порт, на котором соединение поднимается через STARTTLS
STARTTLS_PORT = 587

# Порт SMTP поверх TLS
SMTPS_PORT = 465

PAYMENT_STATUS_LABELS: dict[str, str] = {
    PaymentStatus.AWAITING_PAYMENT: "Ожидает оплаты",
    PaymentStatus.PAID: "Оплачен",
    PaymentStatus.CANCELED: "Отменен",
    PaymentStatus.FAILED: "Не удался",
}


def get_status_label(status: str) -> str:
    """Человекочитаемое название статуса платежа."""
    return PAYMENT_STATUS_LABELS.get(status, status)


class EmailService:
    """Отправка писем через SMTP."""

    def __init__(self, settings: EmailSettings) -> None:
        """Инициализировать сервис.

        Args:
            settings: Настройки SMTP.
        """
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        """Настроена ли отправка почты."""
        return self._settings.is_configured

    def build_payment_notification(
        self,
        to: str,
        order_id: int,
        payment_id: str,
        amount_minor_units: int,
        status: str,
    ) -> EmailMessage:
        """Собрать письмо о статусе платежа (текст + HTML)."""
        label = get_status_label(status)
        amount = format_minor_units(amount_minor_units)

        message = EmailMessage()
        message["Subject"] = f"Платеж по заказу #{order_id}"
        message["From"] = self._settings.smtp_from or ""
        message["To"] = to

        message.set_content(
            f"Статус платежа по заказу #{order_id}: {label}\n"
            f"Номер платежа: {payment_id}\n"
            f"Сумма: {amount} ₽\n"
        )
        message.add_alternative(
            "<html><body>"
            f"<h2>Платеж по заказу #{order_id}</h2>"
            f"<p>Статус: <b>{escape(label)}</b></p>"
            f"<p>Номер платежа: {escape(payment_id)}</p>"
            f"<p>Сумма: {amount} ₽</p>"
            "</body></html>",
            subtype="html",
        )
        return message

    async def send_payment_notification_email(
        self,
        to: str,
        order_id: int,
        payment_id: str,
        amount_minor_units: int,
        status: str,
    ) -> bool:
        """Отправить письмо о статусе платежа.

        Args:
            to: Email получателя.
            order_id: ID заказа.
            payment_id: ID платежа у провайдера.
            amount_minor_units: Сумма в копейках.
            status: Статус платежа.

        Returns:
            True если письмо отправлено, False если SMTP не настроен.

        Raises:
            smtplib.SMTPException, OSError: Ошибка доставки.
        """
        if not self.is_configured:
            logger.info(
                "SMTP не настроен, письмо не отправлено: to=%s, order_id=%s, status=%s",
                to,
                order_id,
                status,
            )
            return False

        message = self.build_payment_notification(
            to, order_id, payment_id, amount_minor_units, status
        )
        await asyncio.to_thread(self._send, message)

        logger.info("Письмо о платеже отправлено: to=%s, order_id=%s", to, order_id)
        return True

    def _send(self, message: EmailMessage) -> None:
        """Отправить письмо (блокирующий вызов, выполняется в потоке)."""
        settings = self._settings
        host = settings.smtp_host or ""

        smtp: smtplib.SMTP
        if settings.smtp_port == SMTPS_PORT:
            smtp = smtplib.SMTP_SSL(host, settings.smtp_port, timeout=SMTP_TIMEOUT)
        else:
            smtp = smtplib.SMTP(host, settings.smtp_port, timeout=SMTP_TIMEOUT)

        with smtp:
            if settings.smtp_port == STARTTLS_PORT:
                smtp.starttls()
            if settings.smtp_user and settings.smtp_password:
                smtp.login(settings.smtp_user, settings.smtp_password.get_secret_value())
            smtp.send_message(message)
