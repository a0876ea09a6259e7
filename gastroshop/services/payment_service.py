"""Сервис платежей.

Связывает платёжных провайдеров с таблицами payments и orders:
- Создание платежа для заказа через настроенный провайдер
- Обработка webhook'ов: проверка подписи, защита от повторной доставки,
  синхронизация статусов платежа и заказа
- Запрос статуса платежа
- Принудительное завершение mock-платежа (локальная разработка)

Основной паттерн использования:
1. Покупатель оформляет заказ и нажимает «Оплатить»
2. create_payment() создаёт платёж у провайдера и запись в БД
3. Покупатель уходит на страницу оплаты по payment_url
4. Провайдер присылает webhook → process_webhook()
5. Если платёж впервые стал paid, HTTP-слой списывает товары со склада

Побочные эффекты второго порядка (привязка payment_id к заказу,
письмо покупателю) не влияют на результат основной операции:
ошибки пишутся в лог.
"""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.core.exceptions import (
    DatabaseError,
    InvalidOrderError,
    PaymentError,
    PaymentNotFoundError,
    ProviderError,
    UnsupportedProviderError,
)
from gastroshop.db.models.order import Order, OrderStatus
from gastroshop.db.models.payment import Payment, PaymentStatus
from gastroshop.db.repositories.order_repo import OrderRepository
from gastroshop.db.repositories.payment_repo import PaymentRepository
from gastroshop.providers.payments.base import (
    BasePaymentProvider,
    PaymentStatusInfo,
    ProviderPaymentStatus,
    WebhookEvent,
)
from gastroshop.providers.payments.registry import PaymentProviderRegistry
from gastroshop.services.metrics import MetricsCollector, PaymentEvent
from gastroshop.services.notification_service import PaymentNotification, PaymentNotifier
from gastroshop.utils.logging import get_logger

__all__ = [
    "PaymentInfo",
    "PaymentService",
    "WebhookOutcome",
    "create_payment_service",
    "derive_order_status",
    "map_provider_status",
]

logger = get_logger(__name__)

MOCK_PROVIDER = "mock"


def map_provider_status(status: str) -> str:
    """Перевести статус провайдера в статус платежа.

    succeeded → paid, canceled → canceled, остальные без изменений.
    """
    if status == ProviderPaymentStatus.SUCCEEDED:
        return PaymentStatus.PAID
    if status == ProviderPaymentStatus.CANCELED:
        return PaymentStatus.CANCELED
    return status


def derive_order_status(payment_status: str) -> str:
    """Статус заказа по статусу платежа: paid, canceled или pending."""
    if payment_status == PaymentStatus.PAID:
        return OrderStatus.PAID
    if payment_status == PaymentStatus.CANCELED:
        return OrderStatus.CANCELED
    return OrderStatus.PENDING


@dataclass
class PaymentInfo:
    """Информация о созданном платеже.

    Attributes:
        payment_id: ID платежа у провайдера.
        payment_url: Ссылка на страницу оплаты.
        provider: Имя провайдера.
        order_id: ID заказа.
        amount: Сумма в копейках.
        currency: Код валюты.
    """

    payment_id: str
    payment_url: str
    provider: str
    order_id: int
    amount: int
    currency: str


@dataclass
class WebhookOutcome:
    """Результат обработки webhook'а.

    Attributes:
        event: Проверенное событие провайдера.
        duplicate: Событие уже применялось, состояние не менялось.
        order_id: ID заказа платежа (None для дубликата).
        previous_status: Статус платежа до применения события.
        payment_status: Статус платежа после применения события.
        order_synced: Статус заказа обновлён (платёж — последняя попытка).
    """

    event: WebhookEvent
    duplicate: bool = False
    order_id: int | None = None
    previous_status: str | None = None
    payment_status: str | None = None
    order_synced: bool = True

    @property
    def became_paid(self) -> bool:
        """Платёж впервые перешёл в paid и оплатил заказ (нужно списать товары)."""
        return (
            not self.duplicate
            and self.order_synced
            and self.payment_status == PaymentStatus.PAID
            and self.previous_status != PaymentStatus.PAID
        )


class PaymentService:
    """Оркестратор платежей.

    Attributes:
        _session: Асинхронная сессия SQLAlchemy.
        _providers: Реестр платёжных провайдеров.
        _default_provider: Провайдер из конфигурации (PAYMENTS__PROVIDER).
        _notifier: Очередь уведомлений покупателю.
        _metrics: Сборщик счётчиков.
    """

    def __init__(
        self,
        session: AsyncSession,
        providers: PaymentProviderRegistry,
        *,
        default_provider: str,
        notifier: PaymentNotifier | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """Инициализация сервиса.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            providers: Реестр провайдеров.
            default_provider: Имя провайдера для новых платежей.
            notifier: Очередь уведомлений (None — уведомления не отправляются).
            metrics: Сборщик счётчиков.
        """
        self._session = session
        self._providers = providers
        self._default_provider = default_provider
        self._notifier = notifier
        self._metrics = metrics
        self._payment_repo = PaymentRepository(session)
        self._order_repo = OrderRepository(session)

    @property
    def default_provider(self) -> str:
        """Имя провайдера для новых платежей."""
        return self._default_provider

    # =========================================================================
    # СОЗДАНИЕ ПЛАТЕЖА
    # =========================================================================

    async def create_payment(
        self,
        order: Order,
        *,
        customer_email: str | None = None,
    ) -> PaymentInfo:
        """Создать платёж для заказа.

        Args:
            order: Заказ с суммой больше нуля.
            customer_email: Email покупателя для чека (если известен).

        Returns:
            PaymentInfo со ссылкой на оплату.

        Raises:
            InvalidOrderError: Сумма заказа не больше нуля.
            UnsupportedProviderError: Провайдер из конфигурации неизвестен.
            ProviderError: Провайдер не смог создать платёж.
            DatabaseError: Не удалось сохранить платёж.
        """
        if order.amount <= 0:
            raise InvalidOrderError(f"Сумма заказа #{order.id} должна быть больше нуля")

        provider = self._providers.get(self._default_provider)

        try:
            intent = await provider.create_payment(order, customer_email=customer_email)
        except ProviderError:
            self._record(PaymentEvent.PROVIDER_ERROR, provider.provider_name)
            logger.exception(
                "Провайдер %s не создал платёж для заказа %s",
                provider.provider_name,
                order.id,
            )
            raise

        try:
            await self._payment_repo.create(
                provider_payment_id=intent.payment_id,
                order_id=order.id,
                amount=intent.amount,
                currency=intent.currency,
                provider=intent.provider,
                checkout_url=intent.checkout_url,
                metadata=intent.metadata,
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.exception("Не удалось сохранить платёж %s", intent.payment_id)
            raise DatabaseError(f"Не удалось сохранить платёж: {e}") from e

        # После rollback в _attach_payment_id атрибуты order истекают
        order_id = order.id
        await self._attach_payment_id(order_id, intent.payment_id)

        self._record(PaymentEvent.PAYMENT_CREATED, intent.provider)
        logger.info(
            "Создан платёж: payment_id=%s, order_id=%s, provider=%s",
            intent.payment_id,
            order_id,
            intent.provider,
        )

        return PaymentInfo(
            payment_id=intent.payment_id,
            payment_url=intent.checkout_url,
            provider=intent.provider,
            order_id=order_id,
            amount=intent.amount,
            currency=intent.currency,
        )

    async def _attach_payment_id(self, order_id: int, payment_id: str) -> None:
        """Привязать платёж к заказу. Ошибка не прерывает создание платежа.

        Платёж к этому моменту уже сохранён отдельным commit'ом.
        """
        try:
            order = await self._order_repo.update_payment_id(order_id, payment_id)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning(
                "Не удалось привязать платёж %s к заказу %s: %s", payment_id, order_id, e
            )
            return

        if order is None:
            logger.warning(
                "Не удалось привязать платёж %s: заказ %s не найден", payment_id, order_id
            )

    # =========================================================================
    # WEBHOOK
    # =========================================================================

    async def process_webhook(
        self,
        payload: bytes,
        signature: str,
        provider_name: str | None = None,
    ) -> WebhookOutcome:
        """Обработать webhook провайдера.

        Args:
            payload: Сырое тело запроса.
            signature: Подпись из заголовка.
            provider_name: Имя провайдера из URL. По умолчанию — из конфигурации.

        Returns:
            WebhookOutcome с событием и информацией о смене статуса.

        Raises:
            UnsupportedProviderError: Провайдер неизвестен или не настроен.
            InvalidSignatureError: Подпись не совпала.
            MalformedPayloadError: Тело не разбирается.
            PaymentNotFoundError: Платёж не найден или создан другим провайдером.
        """
        name = provider_name or self._default_provider

        try:
            provider = self._providers.get(name)
            event = await provider.validate_webhook(payload, signature)
        except (UnsupportedProviderError, PaymentError) as e:
            self._record(PaymentEvent.WEBHOOK_REJECTED, name)
            logger.warning("Webhook отклонён: provider=%s, %s", name, e)
            raise

        if event.event_id:
            applied = await self._payment_repo.get_by_webhook_event_id(event.event_id)
            if applied is not None:
                self._record(PaymentEvent.WEBHOOK_DUPLICATE, name)
                logger.info(
                    "Webhook уже обработан (идемпотентность): event_id=%s, payment_id=%s",
                    event.event_id,
                    applied.provider_payment_id,
                )
                return WebhookOutcome(event=event, duplicate=True)

        payment = await self._find_payment(event.payment_id, provider)
        outcome = await self._apply_status(
            payment,
            map_provider_status(event.status),
            event=event,
        )

        if outcome.duplicate:
            self._record(PaymentEvent.WEBHOOK_DUPLICATE, name)
        else:
            self._record(PaymentEvent.WEBHOOK_PROCESSED, name)
            logger.info(
                "Обработан webhook: payment_id=%s, status=%s, provider=%s",
                event.payment_id,
                outcome.payment_status,
                name,
            )
        return outcome

    async def _find_payment(
        self, payment_id: str, provider: BasePaymentProvider
    ) -> Payment:
        """Найти платёж, созданный этим провайдером.

        Raises:
            PaymentNotFoundError: Платежа нет или его создал другой провайдер.
        """
        payment = await self._payment_repo.get_by_provider_payment_id(payment_id)
        if payment is None or payment.provider != provider.provider_name:
            self._record(PaymentEvent.WEBHOOK_REJECTED, provider.provider_name)
            logger.warning(
                "Платёж для webhook не найден: payment_id=%s, provider=%s",
                payment_id,
                provider.provider_name,
            )
            raise PaymentNotFoundError(payment_id)
        return payment

    async def _is_current_attempt(self, payment: Payment) -> bool:
        """Платёж — последняя попытка оплаты своего заказа.

        Последней считается попытка, привязанная к заказу (orders.payment_id).
        Если привязки нет, то самая новая запись в payments по заказу.
        """
        order = await self._order_repo.get_by_id(payment.order_id)
        if order is not None and order.payment_id:
            return order.payment_id == payment.provider_payment_id

        attempts = await self._payment_repo.list_by_order(payment.order_id)
        return not attempts or attempts[0].id == payment.id

    async def _apply_status(
        self,
        payment: Payment,
        new_status: str,
        *,
        event: WebhookEvent,
    ) -> WebhookOutcome:
        """Применить статус к платежу и заказу в одной транзакции.

        Статус заказа определяет только последняя попытка оплаты.
        Для более ранних попыток обновляется лишь запись платежа.

        Нарушение уникальности webhook_event_id означает, что то же событие
        параллельно применил другой запрос: транзакция откатывается,
        результат помечается как дубликат.
        """
        previous_status = payment.status
        order_id = payment.order_id
        amount = payment.amount
        is_current = await self._is_current_attempt(payment)

        try:
            await self._payment_repo.update_status(
                payment, new_status, webhook_event_id=event.event_id
            )
            if is_current:
                order = await self._order_repo.update_status(
                    order_id, derive_order_status(new_status)
                )
                if order is None:
                    logger.warning("Заказ %s для платежа не найден", order_id)
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            logger.info(
                "Событие %s уже применено параллельным запросом", event.event_id
            )
            return WebhookOutcome(event=event, duplicate=True)

        if not is_current:
            logger.warning(
                "Платёж %s не последняя попытка оплаты заказа %s: статус заказа не меняется",
                payment.provider_payment_id,
                order_id,
            )
            return WebhookOutcome(
                event=event,
                order_id=order_id,
                previous_status=previous_status,
                payment_status=new_status,
                order_synced=False,
            )

        self._notify(
            PaymentNotification(
                order_id=order_id,
                payment_id=event.payment_id,
                amount_minor_units=amount,
                status=new_status,
            )
        )

        return WebhookOutcome(
            event=event,
            order_id=order_id,
            previous_status=previous_status,
            payment_status=new_status,
        )

    # =========================================================================
    # СТАТУС И MOCK
    # =========================================================================

    async def get_payment_status(self, payment_id: str) -> PaymentStatusInfo:
        """Получить статус платежа.

        Сначала ищем платёж в БД. Для провайдеров без внешнего статуса
        (mock) возвращаем статус из БД, иначе спрашиваем провайдера,
        которым платёж был создан.

        Raises:
            PaymentNotFoundError: Платёж не найден.
            UnsupportedProviderError: Провайдер платежа больше не настроен.
            ProviderError: Ошибка запроса к API провайдера.
        """
        payment = await self._payment_repo.get_by_provider_payment_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        provider = self._providers.get(payment.provider)
        if not provider.supports_remote_status:
            return PaymentStatusInfo(
                payment_id=payment.provider_payment_id,
                status=payment.status,
                amount_minor_units=payment.amount,
                currency=payment.currency,
                metadata=payment.payment_metadata,
            )

        try:
            return await provider.get_payment_status(payment_id)
        except ProviderError:
            self._record(PaymentEvent.PROVIDER_ERROR, provider.provider_name)
            raise

    async def complete_mock_payment(self, payment_id: str) -> WebhookOutcome:
        """Отметить mock-платёж оплаченным.

        Используется страницей /mock-checkout при локальной разработке:
        статусы платежа и заказа меняются так же, как при webhook'е.

        Raises:
            PaymentNotFoundError: Платежа нет или он создан не mock-провайдером.
        """
        payment = await self._payment_repo.get_by_provider_payment_id(payment_id)
        if payment is None or payment.provider != MOCK_PROVIDER:
            raise PaymentNotFoundError(payment_id)

        event = WebhookEvent(
            payment_id=payment.provider_payment_id,
            status=ProviderPaymentStatus.SUCCEEDED,
            amount_minor_units=payment.amount,
            currency=payment.currency,
            order_id=payment.order_id,
            event_id=None,
            provider=MOCK_PROVIDER,
        )
        outcome = await self._apply_status(payment, PaymentStatus.PAID, event=event)

        logger.info(
            "Mock-платёж завершён: payment_id=%s, order_id=%s",
            payment_id,
            outcome.order_id,
        )
        return outcome

    # =========================================================================
    # ВСПОМОГАТЕЛЬНЫЕ
    # =========================================================================

    def _notify(self, notification: PaymentNotification) -> None:
        """Поставить письмо покупателю в очередь."""
        if self._notifier is None:
            return
        self._notifier.enqueue(notification)

    def _record(self, event: PaymentEvent, provider: str) -> None:
        if self._metrics is not None:
            self._metrics.record_payment_event(event, provider)


def create_payment_service(
    session: AsyncSession,
    providers: PaymentProviderRegistry,
    *,
    default_provider: str | None = None,
    notifier: PaymentNotifier | None = None,
    metrics: MetricsCollector | None = None,
) -> PaymentService:
    """Фабричная функция для создания PaymentService.

    Если провайдер не указан, берётся PAYMENTS__PROVIDER из настроек.

    Example:
        async with DatabaseSession() as session:
            service = create_payment_service(session, registry)
            info = await service.create_payment(order)
    """
    if default_provider is None:
        from gastroshop.config.settings import settings

        default_provider = settings.payments.provider

    return PaymentService(
        session,
        providers,
        default_provider=default_provider,
        notifier=notifier,
        metrics=metrics,
    )
