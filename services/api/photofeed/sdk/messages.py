"""
User-facing failure messages, one per status class, localized.

Network failures (no response received) get their own message even though
the optimistic controller rolls them back exactly like HTTP errors.
"""
from typing import Optional

from photofeed.config import settings
from photofeed.sdk.api_client import ApiRequestError

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "unauthorized": "Please sign in to continue",
        "forbidden": "You don't have permission to do that",
        "not_found": "We couldn't find what you were looking for",
        "bad_request": "Something about that request wasn't right",
        "server": "Something went wrong on our side. Please try again shortly",
        "network": "Can't reach the server. Check your connection and try again",
    },
    "ko": {
        "unauthorized": "로그인이 필요합니다",
        "forbidden": "권한이 없습니다",
        "not_found": "요청한 항목을 찾을 수 없습니다",
        "bad_request": "잘못된 요청입니다",
        "server": "서버 오류가 발생했습니다. 잠시 후 다시 시도해주세요",
        "network": "네트워크 연결을 확인해주세요",
    },
}


def message_key(status: Optional[int], network: bool = False) -> str:
    if network or status is None:
        return "network"
    if status == 401:
        return "unauthorized"
    if status == 403:
        return "forbidden"
    if status == 404:
        return "not_found"
    if 400 <= status < 500:
        return "bad_request"
    return "server"


def describe_failure(error: ApiRequestError, locale: Optional[str] = None) -> str:
    catalog = MESSAGES.get(locale or settings.client_locale, MESSAGES["en"])
    return catalog[message_key(error.status, error.network)]
