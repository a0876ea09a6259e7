"""Бэкенд интернет-магазина деликатесов: заказы, платежи, webhook'и провайдеров."""

__version__ = "0.1.0"
