"""Фоновая доставка уведомлений о платежах.

Webhook не ждёт отправки письма: PaymentService кладёт задачу в очередь
NotificationDispatcher и сразу отвечает провайдеру. Очередь ограничена,
задачи разбирают несколько воркеров.

Гарантии:
- enqueue() никогда не выбрасывает исключений в обработчик webhook'а
- каждая задача повторяется до max_attempts раз (at-least-once)
- задача, которую не удалось доставить или пришлось отбросить из-за
  переполнения очереди, пишется в лог и в журнал failures

Использование:
    dispatcher = NotificationDispatcher(email_service, session_factory)
    await dispatcher.start()
    dispatcher.enqueue(PaymentNotification(...))
    ...
    await dispatcher.stop()
"""

import asyncio
import contextlib
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gastroshop.config.models import NotificationSettings
from gastroshop.db.base import DatabaseSession
from gastroshop.db.repositories.order_repo import OrderRepository
from gastroshop.db.repositories.user_repo import UserRepository
from gastroshop.services.email_service import EmailService
from gastroshop.services.metrics import MetricsCollector, PaymentEvent
from gastroshop.utils.logging import get_logger
from gastroshop.utils.timezone import utc_now

logger = get_logger(__name__)

# Сколько последних неудач хранить в журнале
FAILURE_LOG_SIZE = 100

# Сколько ждать разбора очереди при остановке (секунды)
STOP_DRAIN_TIMEOUT = 5.0


@dataclass(frozen=True)
class PaymentNotification:
    """Задача на уведомление покупателя о статусе платежа.

    Attributes:
        order_id: ID заказа.
        payment_id: ID платежа у провайдера.
        amount_minor_units: Сумма в копейках.
        status: Новый статус платежа.
    """

    order_id: int
    payment_id: str
    amount_minor_units: int
    status: str


@dataclass(frozen=True)
class NotificationFailure:
    """Запись журнала недоставленных уведомлений."""

    notification: PaymentNotification
    attempts: int
    error: str
    failed_at: datetime


class PaymentNotifier(Protocol):
    """Протокол получателя задач на уведомление (для DI и тестов)."""

    def enqueue(self, notification: PaymentNotification) -> bool:
        """Поставить уведомление в очередь."""
        ...


class NotificationDispatcher:
    """Очередь уведомлений с пулом фоновых воркеров."""

    def __init__(
        self,
        email_service: EmailService,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: NotificationSettings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """Инициализировать диспетчер.

        Args:
            email_service: Сервис отправки писем.
            session_factory: Фабрика сессий БД. По умолчанию — глобальная.
            settings: Размер очереди, число воркеров и попыток.
            metrics: Сборщик счётчиков.
        """
        self._email_service = email_service
        self._session_factory = session_factory
        self._settings = settings or NotificationSettings()
        self._metrics = metrics
        self._queue: asyncio.Queue[PaymentNotification] = asyncio.Queue(
            maxsize=self._settings.queue_size
        )
        self._workers: list[asyncio.Task[None]] = []
        self._failures: deque[NotificationFailure] = deque(maxlen=FAILURE_LOG_SIZE)
        self._running = False

    @property
    def failures(self) -> list[NotificationFailure]:
        """Журнал недоставленных уведомлений (старые первые)."""
        return list(self._failures)

    @property
    def pending(self) -> int:
        """Количество задач в очереди."""
        return self._queue.qsize()

    async def start(self) -> None:
        """Запустить воркеры."""
        if self._running:
            logger.warning("NotificationDispatcher уже запущен")
            return

        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"notification-worker-{index}")
            for index in range(self._settings.workers)
        ]
        logger.info("NotificationDispatcher запущен: воркеров=%s", self._settings.workers)

    async def stop(self) -> None:
        """Остановить воркеры, дав им разобрать очередь."""
        if not self._running:
            return

        self._running = False

        try:
            await asyncio.wait_for(self._queue.join(), timeout=STOP_DRAIN_TIMEOUT)
        except TimeoutError:
            logger.warning(
                "Остановка с неразобранной очередью уведомлений: %s задач", self.pending
            )

        for task in self._workers:
            task.cancel()
        for task in self._workers:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._workers = []

        logger.info("NotificationDispatcher остановлен")

    def enqueue(self, notification: PaymentNotification) -> bool:
        """Поставить уведомление в очередь.

        Returns:
            True если задача принята, False если очередь переполнена.
        """
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            self._record_failure(notification, attempts=0, error="очередь переполнена")
            return False

        logger.debug(
            "Уведомление поставлено в очередь: order_id=%s, status=%s",
            notification.order_id,
            notification.status,
        )
        return True

    async def join(self) -> None:
        """Дождаться, пока очередь опустеет."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        """Цикл воркера: забрать задачу, доставить, отметить выполненной."""
        while True:
            notification = await self._queue.get()
            try:
                await self._deliver(notification)
            except Exception:
                logger.exception("Ошибка в воркере уведомлений %s", index)
            finally:
                self._queue.task_done()

    async def _deliver(self, notification: PaymentNotification) -> None:
        """Доставить уведомление с повторами."""
        max_attempts = max(self._settings.max_attempts, 1)

        for attempt in range(1, max_attempts + 1):
            try:
                await self._send(notification)
            except Exception as e:
                logger.warning(
                    "Не удалось отправить уведомление (попытка %s/%s): order_id=%s, %s",
                    attempt,
                    max_attempts,
                    notification.order_id,
                    e,
                )
                if attempt == max_attempts:
                    self._record_failure(notification, attempts=attempt, error=str(e))
                    return
                await asyncio.sleep(self._settings.retry_delay * attempt)
            else:
                return

    async def _send(self, notification: PaymentNotification) -> None:
        """Найти получателя и отправить письмо.

        Гостевые заказы (без user_id) пропускаются.
        """
        async with DatabaseSession(self._session_factory) as session:
            order = await OrderRepository(session).get_by_id(notification.order_id)
            if order is None:
                logger.warning(
                    "Заказ для уведомления не найден: order_id=%s", notification.order_id
                )
                return

            if order.user_id is None:
                logger.debug(
                    "Гостевой заказ, уведомление не отправляется: order_id=%s", order.id
                )
                return

            user = await UserRepository(session).get_by_id(order.user_id)
            if user is None:
                logger.warning(
                    "Покупатель для уведомления не найден: user_id=%s", order.user_id
                )
                return

            email = user.email

        sent = await self._email_service.send_payment_notification_email(
            email,
            notification.order_id,
            notification.payment_id,
            notification.amount_minor_units,
            notification.status,
        )
        if sent and self._metrics is not None:
            self._metrics.record_payment_event(PaymentEvent.NOTIFICATION_SENT)

    def _record_failure(
        self, notification: PaymentNotification, *, attempts: int, error: str
    ) -> None:
        """Записать недоставленное уведомление в журнал."""
        self._failures.append(
            NotificationFailure(
                notification=notification,
                attempts=attempts,
                error=error,
                failed_at=utc_now(),
            )
        )
        if self._metrics is not None:
            self._metrics.record_payment_event(PaymentEvent.NOTIFICATION_FAILED)

        logger.error(
            "Уведомление не доставлено: order_id=%s, payment_id=%s, status=%s, "
            "попыток=%s, ошибка=%s",
            notification.order_id,
            notification.payment_id,
            notification.status,
            attempts,
            error,
        )
