# app/utils/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    目前時間 (UTC，不帶 tzinfo)

    資料表的 TIMESTAMP 欄位存的是 naive UTC，比較期限時雙方必須一致。
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_won(amount: int) -> str:
    """金額顯示 (e.g., 900000 -> 'KRW 900,000')"""
    return f"KRW {amount:,}"
