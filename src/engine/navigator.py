"""Session navigation math (cursor / page arithmetic, no I/O)"""

import random
from typing import Optional


def clamp_cursor(index: int, total: int) -> int:
    """커서를 [0, total - 1] 범위로 제한 (빈 목록이면 0)"""
    if total <= 0:
        return 0
    return max(0, min(index, total - 1))


def step_cursor(cursor: int, total: int, delta: int) -> int:
    """next/prev 이동 (경계에서 멈춤, 순환하지 않음)"""
    return clamp_cursor(cursor + delta, total)


def random_cursor(total: int, rng: Optional[random.Random] = None) -> int:
    if total <= 0:
        return 0
    return (rng or random).randrange(total)


def clamp_page(target: int, known_max_page: int) -> int:
    """페이지 점프 대상을 [1, known_max_page] 로 제한"""
    return max(1, min(target, max(1, known_max_page)))


def next_known_max_page(
    current: int, page: int, has_more: bool, total_pages: Optional[int] = None
) -> int:
    """지금까지 알려진 최대 페이지 갱신

    프로바이더가 전체 페이지 수를 알려주면 그 값을 사용하고, 아니면
    has_more 일 때 다음 페이지까지 도달 가능한 것으로 보고 단조 증가시킵니다.
    """
    if total_pages is not None and total_pages > 0:
        return max(page, total_pages)
    reachable = page + 1 if has_more else page
    return max(current, reachable)
