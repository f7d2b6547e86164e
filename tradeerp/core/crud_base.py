# tradeerp/core/crud_base.py

"""
공통 저장소(Repository) 작업을 위한 기본 클래스 모듈입니다.

각 인스턴스는 하나의 AsyncSession에 바인딩되며, 커밋은 하지 않습니다.
트랜잭션 경계(commit/rollback)는 작업 단위(UnitOfWork)가 담당합니다.
"""

from typing import Generic, List, Optional, Type, TypeVar, Any, Dict
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tradeerp.core.exceptions import IntegrityConflictError

ModelType = TypeVar("ModelType", bound=SQLModel)


class CRUDBase(Generic[ModelType]):
    """
    모든 저장소의 기본 클래스입니다.
    이 클래스를 상속받아 각 모델에 특화된 조회 메서드를 구현합니다.
    """
    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any, *, for_update: bool = False) -> Optional[ModelType]:
        """ID를 기준으로 단일 레코드를 조회합니다. for_update면 행 잠금을 겁니다."""
        if for_update:
            statement = select(self.model).where(self.model.id == id).with_for_update()
            result = await self.db.execute(statement)
            return result.scalar_one_or_none()
        return await self.db.get(self.model, id)

    async def get_multi(self, *, skip: int = 0, limit: int = 100, **kwargs: Any) -> List[ModelType]:
        """
        여러 레코드를 조회합니다. 필터링을 위한 키워드 인자를 지원합니다.
        """
        query = select(self.model)
        for field, value in kwargs.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        query = query.order_by(self.model.id).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_attribute(self, *, attribute: str, value: Any) -> Optional[ModelType]:
        statement = select(self.model).where(getattr(self.model, attribute) == value)
        response = await self.db.execute(statement)
        return response.scalar_one_or_none()

    async def get_filtered(
        self,
        *,
        filters: Optional[Dict[str, Any]] = None,  # 다중 속성 필터: {"attribute_name": "value"}
        date_range_field: Optional[str] = None,    # 기간 검색을 적용할 날짜 필드 이름
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        order_by_field: Optional[str] = None,
        order_desc: bool = True,
        skip: int = 0,
        limit: int = 100
    ) -> List[ModelType]:
        """
        다중 속성 및 기간 검색 기능을 포함한 다중 조회.
        None 값 필터는 무시합니다.
        """
        query = select(self.model)
        conditions = []

        if filters:
            for attribute, value in filters.items():
                if value is None:
                    continue
                if hasattr(self.model, attribute):
                    conditions.append(getattr(self.model, attribute) == value)

        if date_range_field and hasattr(self.model, date_range_field):
            date_field = getattr(self.model, date_range_field)
            if start_date is not None:
                conditions.append(date_field >= start_date)
            if end_date is not None:
                # end_date 당일까지 포함
                conditions.append(date_field < end_date + timedelta(days=1))

        if conditions:
            query = query.where(*conditions)

        if order_by_field and hasattr(self.model, order_by_field):
            column = getattr(self.model, order_by_field)
            query = query.order_by(column.desc() if order_desc else column, self.model.id)
        else:
            query = query.order_by(self.model.id.desc() if order_desc else self.model.id)

        query = query.offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add(self, db_obj: ModelType) -> ModelType:
        """
        레코드를 세션에 추가하고 flush하여 ID를 발급받습니다.
        고유 제약 위반은 IntegrityConflictError로 변환합니다.
        """
        self.db.add(db_obj)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise IntegrityConflictError(
                f"{self.model.__name__} violates a uniqueness constraint: {e.orig}"
            ) from e
        await self.db.refresh(db_obj)
        return db_obj

    async def save(self, db_obj: ModelType) -> ModelType:
        """변경된 레코드를 flush합니다."""
        self.db.add(db_obj)
        await self.db.flush()
        return db_obj

    async def delete(self, db_obj: ModelType) -> None:
        await self.db.delete(db_obj)
        await self.db.flush()
