"""Управление жизненным циклом приложения.

Класс ApplicationLifecycle инкапсулирует логику startup и shutdown:
- Проверка миграций БД
- Запуск и остановка воркеров уведомлений
- Закрытие HTTP-клиентов платёжных провайдеров
- Закрытие пула соединений с БД
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gastroshop.db.base import dispose_engine, get_engine
from gastroshop.db.migrations import check_migrations
from gastroshop.utils.logging import get_logger

if TYPE_CHECKING:
    from gastroshop.config.settings import Settings
    from gastroshop.providers.payments.registry import PaymentProviderRegistry
    from gastroshop.services.notification_service import NotificationDispatcher

logger = get_logger(__name__)


class ApplicationLifecycle:
    """Управление жизненным циклом приложения.

    Attributes:
        settings: Настройки приложения.
        providers: Реестр платёжных провайдеров.
        notifier: Очередь уведомлений о платежах.
    """

    def __init__(
        self,
        settings: Settings,
        providers: PaymentProviderRegistry,
        notifier: NotificationDispatcher,
    ) -> None:
        """Инициализировать lifecycle manager.

        Args:
            settings: Настройки приложения.
            providers: Реестр платёжных провайдеров.
            notifier: Очередь уведомлений о платежах.
        """
        self.settings = settings
        self.providers = providers
        self.notifier = notifier

    async def startup(self) -> None:
        """Выполнить startup приложения.

        1. Проверка миграций (предупреждение, если не применены)
        2. Проверка, что настроенный провайдер известен
        3. Запуск воркеров уведомлений
        """
        logger.info("Запуск приложения...")

        await check_migrations(get_engine())

        provider = self.settings.payments.provider
        if not self.settings.payments.is_known_provider:
            logger.error(
                "Неизвестный платёжный провайдер PAYMENTS__PROVIDER=%s. Доступны: %s",
                provider,
                ", ".join(self.providers.list_providers()),
            )
        else:
            logger.info("Платёжный провайдер: %s", provider)

        await self.notifier.start()

        logger.info("✅ Приложение запущено успешно")

    async def shutdown(self) -> None:
        """Выполнить shutdown приложения.

        Останавливает компоненты в обратном порядке:
        1. Воркеры уведомлений (с разбором очереди)
        2. HTTP-клиенты провайдеров
        3. Пул соединений с БД
        """
        logger.info("Остановка приложения...")

        await self.notifier.stop()

        await self.providers.close()
        logger.debug("HTTP-клиенты провайдеров закрыты")

        await dispose_engine()
        logger.debug("Пул соединений с БД закрыт")

        logger.info("✅ Приложение остановлено")
