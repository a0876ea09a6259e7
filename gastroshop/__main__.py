"""Entry point для запуска через python -m gastroshop.

Использование:
    python -m gastroshop              # Production mode (без hot-reload)
    python -m gastroshop --dev        # Development mode (с hot-reload)
    python -m gastroshop --help       # Показать справку
"""

import argparse

import uvicorn


def main() -> None:
    """Запустить приложение через uvicorn."""
    parser = argparse.ArgumentParser(
        description="Gastroshop — платежи и заказы магазина фермерских продуктов",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры:
    python -m gastroshop              # Production mode
    python -m gastroshop --dev        # Development mode с hot-reload
    python -m gastroshop --port 8080  # Указать кастомный порт
        """,
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Включить hot-reload для разработки",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Хост для сервера (по умолчанию: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3001,
        help="Порт для сервера (по умолчанию: 3001)",
    )
    args = parser.parse_args()

    uvicorn.run(
        "gastroshop.main:app",
        host=args.host,
        port=args.port,
        reload=args.dev,
        reload_includes=["gastroshop/**/*.py"] if args.dev else None,
        reload_excludes=[".venv/**", "data/**", "tests/**", ".git/**"] if args.dev else None,
    )


if __name__ == "__main__":
    main()
