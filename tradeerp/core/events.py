# tradeerp/core/events.py

"""
커밋 후(post-commit) 이벤트 구독자 레지스트리입니다.

서비스는 트랜잭션 도중 이벤트를 작업 단위(UnitOfWork)에 수집(collect)만 하고,
작업 단위는 주 트랜잭션이 커밋된 뒤 여기에 등록된 핸들러를 순서대로 호출합니다.
핸들러 하나가 실패해도 나머지 핸들러와 이미 커밋된 주 작업에는 영향을 주지 않습니다.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    """모든 도메인 이벤트의 기본 클래스."""


EventHandler = Callable[..., Awaitable[None]]


class EventBus:
    """
    이벤트 타입별 핸들러 목록을 관리하는 메모리 내 레지스트리.
    같은 타입에 같은 핸들러를 두 번 등록하지 않습니다.
    """

    def __init__(self):
        self._subscribers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[DomainEvent]) -> Callable[[EventHandler], EventHandler]:
        """핸들러를 이벤트 타입에 등록하는 데코레이터."""
        def decorator(handler: EventHandler) -> EventHandler:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.debug("Subscribed %s to %s", handler.__qualname__, event_type.__name__)
            return handler
        return decorator

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event: DomainEvent) -> List[EventHandler]:
        return list(self._subscribers.get(type(event), []))


event_bus = EventBus()
