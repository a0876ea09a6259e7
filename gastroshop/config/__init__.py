"""Модуль конфигурации.

Для доступа к настройкам используйте:
    from gastroshop.config.settings import settings

Для использования только классов настроек (без загрузки .env):
    from gastroshop.config.models import PaymentsSettings
"""

# settings здесь не импортируется: тесты импортируют gastroshop.config.models
# без чтения .env и переменных окружения.
