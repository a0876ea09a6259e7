"""Вспомогательные модули.

- logging.py — настройка логирования
- money.py — перевод сумм между десятичной строкой и минорными единицами
- timezone.py — работа с часовыми поясами
"""
