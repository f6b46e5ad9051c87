"""SQLAlchemy 记录存储

基于 Session 和使用 TreeIndexFieldsMixin 的模型实现 RecordRepository 与
RecordStore 协议。

批量写入时每一项在独立的 SAVEPOINT 中执行，单项失败只回滚该项，
其余项继续；全部执行完后统一提交。

使用示例:
    engine, SessionLocal = init_database(settings.database)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    repository = SqlAlchemyRecordRepository(session, Category)
    records = repository.retrieve("p1", exclude_ids={"a1"})
"""

from contextlib import contextmanager
from typing import Any, Iterable, List, Optional, Sequence, Type

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ytree.engine.records import Record, WRITABLE_FIELDS
from ytree.engine.repository import ANY_PARTITION, Fault, WriteItem, WriteResult
from ytree.log import get_logger

from .fields import FIELD_COLUMN_MAP

logger = get_logger("ytree.orm.repository")


class SqlAlchemyRecordRepository:
    """SQLAlchemy 记录存储

    Args:
        session: SQLAlchemy 会话
        model: 使用 TreeIndexFieldsMixin 的模型类（主键列名为 id）
        autocommit: 写操作后是否立即提交；在 transaction() 块内总是延迟到块结束
    """

    def __init__(self, session: Session, model: Type, autocommit: bool = True):
        self.session = session
        self.model = model
        self.autocommit = autocommit
        self._in_transaction = False

    # ==================== 转换 ====================

    def _to_record(self, row) -> Record:
        values = {field: getattr(row, column) for field, column in FIELD_COLUMN_MAP.items()}
        return Record(id=row.id, **values)

    def _assign(self, row, payload: dict) -> None:
        for field, value in payload.items():
            if field in WRITABLE_FIELDS:
                setattr(row, FIELD_COLUMN_MAP[field], value)

    def _ordered(self, stmt):
        index_column = getattr(self.model, FIELD_COLUMN_MAP["index"])
        return stmt.order_by(index_column.is_(None), index_column, self.model.id)

    def _commit(self) -> None:
        if self.autocommit and not self._in_transaction:
            self.session.commit()

    def _require_row(self, record_id: Any):
        row = self.session.get(self.model, record_id)
        if row is None:
            raise KeyError(f"记录不存在: {record_id}")
        return row

    # ==================== 引擎协议 ====================

    def retrieve(self, profile_id: Any, exclude_ids: Iterable[Any] = ()) -> List[Record]:
        stmt = select(self.model)
        if profile_id is not ANY_PARTITION:
            if profile_id is None:
                stmt = stmt.where(self.model.profile_id.is_(None))
            else:
                stmt = stmt.where(self.model.profile_id == profile_id)

        excluded = list(exclude_ids)
        if excluded:
            stmt = stmt.where(self.model.id.not_in(excluded))

        return [self._to_record(row) for row in self.session.scalars(self._ordered(stmt))]

    def retrieve_one(self, record_id: Any, fields: Optional[Sequence[str]] = None) -> Optional[Record]:
        row = self.session.get(self.model, record_id)
        return self._to_record(row) if row is not None else None

    def retrieve_children(self, parent_id: Any) -> List[Record]:
        stmt = select(self.model).where(self.model.parent_id == parent_id)
        return [self._to_record(row) for row in self.session.scalars(self._ordered(stmt))]

    def batch_write(self, items: Sequence[WriteItem]) -> List[WriteResult]:
        results = []
        for position, item in enumerate(items):
            fault = None
            try:
                with self.session.begin_nested():
                    row = self.session.get(self.model, item.record.id)
                    if row is None:
                        fault = Fault(
                            index=position,
                            message=f"记录不存在: {item.record.id}",
                            code="NOT_FOUND",
                        )
                    else:
                        self._assign(row, item.payload())
                        self.session.flush()
            except SQLAlchemyError as e:
                orig = getattr(e, "orig", None)
                fault = Fault(
                    index=position,
                    message=str(e),
                    inner_message=str(orig) if orig is not None else None,
                    code=getattr(e, "code", None) or type(e).__name__,
                )
                logger.debug(f"第 {position} 项写入失败，已回滚到保存点: {e}")
            results.append(WriteResult(position, fault))

        self._commit()
        return results

    # ==================== 宿主协议 ====================

    def insert(self, record: Record) -> Record:
        row = self.model(id=record.id)
        self._assign(row, record.to_payload())
        self.session.add(row)
        self.session.flush()
        self._commit()
        return self._to_record(row)

    def apply(self, record_id: Any, payload: dict) -> Record:
        row = self._require_row(record_id)
        self._assign(row, payload)
        self.session.flush()
        self._commit()
        return self._to_record(row)

    def clear_parent(self, record_id: Any) -> None:
        row = self._require_row(record_id)
        row.parent_id = None
        self.session.flush()
        self._commit()

    def remove(self, record_id: Any) -> None:
        self.session.delete(self._require_row(record_id))
        self.session.flush()
        self._commit()

    @contextmanager
    def transaction(self):
        """事务块：块内的写操作在结束时统一提交，异常时回滚"""
        self._in_transaction = True
        try:
            yield self
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._in_transaction = False
