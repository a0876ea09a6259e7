"""Репозиторий для работы с товарами.

Нужен оформлению заказа (цены, остатки) и списанию остатков после оплаты.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gastroshop.config.constants import DEFAULT_CURRENCY
from gastroshop.db.models.product import Product
from gastroshop.utils.logging import get_logger

logger = get_logger(__name__)


class ProductRepository:
    """Репозиторий для работы с таблицей products."""

    def __init__(self, session: AsyncSession) -> None:
        """Инициализация репозитория.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def create(
        self,
        *,
        slug: str,
        title: str,
        price_cents: int,
        quantity: int,
        currency: str = DEFAULT_CURRENCY,
    ) -> Product:
        """Добавить товар в каталог."""
        product = Product(
            slug=slug,
            title=title,
            price_cents=price_cents,
            quantity=quantity,
            currency=currency,
            in_stock=quantity > 0,
        )
        self._session.add(product)
        await self._session.flush()
        await self._session.refresh(product)
        return product

    async def get_by_id(self, product_id: int) -> Product | None:
        """Получить товар по ID."""
        stmt = select(Product).where(Product.id == product_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_ids(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Получить товары по списку ID.

        Returns:
            Словарь product_id → Product (отсутствующих ID в нём нет).
        """
        ids = set(product_ids)
        if not ids:
            return {}

        stmt = select(Product).where(Product.id.in_(ids))
        result = await self._session.execute(stmt)
        return {product.id: product for product in result.scalars().all()}

    async def decrease_quantity(self, product_id: int, quantity: int) -> Product | None:
        """Списать остаток товара.

        Остаток не уходит в минус. Когда он доходит до нуля,
        товар снимается с продажи (in_stock=False).

        Args:
            product_id: ID товара.
            quantity: Сколько списать.

        Returns:
            Обновлённый товар или None если товар не найден.
        """
        product = await self.get_by_id(product_id)
        if product is None:
            return None

        if product.quantity < quantity:
            logger.warning(
                "Остаток товара меньше списываемого: product_id=%s, остаток=%s, списание=%s",
                product_id,
                product.quantity,
                quantity,
            )

        product.quantity = max(product.quantity - quantity, 0)
        if product.quantity == 0:
            product.in_stock = False

        await self._session.flush()
        return product
