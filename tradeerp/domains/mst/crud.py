# tradeerp/domains/mst/crud.py

"""
'mst' 도메인의 저장소(Repository) 클래스를 정의하는 모듈입니다.
"""

from datetime import date
from typing import Optional

from sqlmodel import select

from tradeerp.core.crud_base import CRUDBase
from tradeerp.domains.mst import models as mst_models


class ProductCRUD(CRUDBase[mst_models.Product]):
    async def get_by_code(self, code: str) -> Optional[mst_models.Product]:
        return await self.get_by_attribute(attribute="code", value=code)


class ItemCRUD(CRUDBase[mst_models.Item]):
    pass


class VendorCRUD(CRUDBase[mst_models.Vendor]):
    pass


class SalespersonCRUD(CRUDBase[mst_models.Salesperson]):
    pass


class VendorProductPriceCRUD(CRUDBase[mst_models.VendorProductPrice]):
    async def get_effective(
        self, *, vendor_id: int, product_id: int, on_date: date
    ) -> Optional[mst_models.VendorProductPrice]:
        """on_date 이전(포함)에 적용된 단가 중 가장 최근 것을 반환합니다."""
        price = mst_models.VendorProductPrice
        statement = (
            select(price)
            .where(price.vendor_id == vendor_id)
            .where(price.product_id == product_id)
            .where(price.effective_date <= on_date)
            .order_by(price.effective_date.desc())
            .limit(1)
        )
        result = await self.db.execute(statement)
        return result.scalars().first()


class ProductMonthlyCostCRUD(CRUDBase[mst_models.ProductMonthlyCost]):
    async def get_by_product_month(
        self, *, product_id: int, year_month: str
    ) -> Optional[mst_models.ProductMonthlyCost]:
        statement = (
            select(mst_models.ProductMonthlyCost)
            .where(mst_models.ProductMonthlyCost.product_id == product_id)
            .where(mst_models.ProductMonthlyCost.year_month == year_month)
        )
        result = await self.db.execute(statement)
        return result.scalar_one_or_none()
