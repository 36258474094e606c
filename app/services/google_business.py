"""
Google Business Profile publisher adapter.

Thin ``requests`` client for the three calls scheduled content needs:
create a question, upsert its answer, create a local post. Every failure is
raised as ExternalServiceError with ``retryable`` set for network errors,
rate limiting and 5xx responses.
"""
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from ..config import Settings, get_settings
from ..exceptions import ExternalServiceError
from ..logging_config import publisher_logger, timed

SERVICE = "google_business_profile"
VIDEO_EXTENSIONS = (".mp4", ".avi", ".mov")


def qanda_location(location_id: str) -> str:
    """``accounts/1/locations/2``, ``locations/2`` and ``2`` all map to ``locations/2``."""
    return f"locations/{location_id.rstrip('/').split('/')[-1]}"


def location_path(account_name: Optional[str], location_id: str) -> str:
    """Parent path for localPosts: ``accounts/{account}/locations/{location}``."""
    if "accounts/" in location_id and "locations/" in location_id:
        return location_id
    if not account_name:
        raise ExternalServiceError(
            "An account name is required to publish posts",
            service=SERVICE,
            reason="ACCOUNT_NAME_MISSING",
        )
    account = account_name if account_name.startswith("accounts/") else f"accounts/{account_name}"
    if location_id.startswith("locations/"):
        return f"{account}/{location_id}"
    return f"{account}/locations/{location_id}"


def _google_date(value: datetime) -> Dict[str, int]:
    return {"year": value.year, "month": value.month, "day": value.day}


def _google_time(value: datetime) -> Dict[str, int]:
    return {"hours": value.hour, "minutes": value.minute}


def _parse(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def build_schedule(schedule: Any) -> Optional[Dict[str, Any]]:
    """Convert ``{"start": iso, "end": iso}`` metadata into a Google TimeInterval.

    Schedules already in Google's ``startDate``/``endDate`` shape pass through.
    """
    if not isinstance(schedule, dict):
        return None
    if "startDate" in schedule:
        return schedule

    start = _parse(schedule.get("start") or schedule.get("startDate"))
    if not start:
        return None
    end = _parse(schedule.get("end")) or start
    return {
        "startDate": _google_date(start),
        "startTime": _google_time(start),
        "endDate": _google_date(end),
        "endTime": _google_time(end),
    }


def build_post_payload(post) -> Dict[str, Any]:
    """Translate a ScheduledPost row into a localPost request body.

    EVENT and OFFER posts without a usable schedule are published as STANDARD.
    """
    metadata = post.post_metadata or {}
    topic_type = post.topic_type or "STANDARD"
    payload: Dict[str, Any] = {
        "languageCode": post.language_code or "en",
        "summary": post.summary,
    }

    schedule = build_schedule(metadata.get("schedule"))
    if topic_type in ("EVENT", "OFFER") and metadata.get("title") and schedule:
        payload["event"] = {"title": metadata["title"], "schedule": schedule}
        if topic_type == "OFFER":
            offer = {
                "couponCode": metadata.get("couponCode"),
                "redeemOnlineUrl": metadata.get("redeemOnlineUrl"),
                "termsConditions": metadata.get("termsConditions"),
            }
            payload["offer"] = {k: v for k, v in offer.items() if v}
    elif topic_type in ("EVENT", "OFFER"):
        publisher_logger.warning(
            f"{topic_type} post missing title or schedule, publishing as STANDARD",
            post_id=post.id,
        )
        topic_type = "STANDARD"
    elif topic_type == "ALERT":
        payload["alertType"] = metadata.get("alertType") or "COVID_19"

    payload["topicType"] = topic_type

    action_type = post.action_type
    if action_type == "CALL":
        payload["callToAction"] = {"actionType": "CALL"}
    elif action_type and post.action_url:
        payload["callToAction"] = {"actionType": action_type, "url": post.action_url}

    if post.media_url:
        media_format = "VIDEO" if post.media_url.lower().endswith(VIDEO_EXTENSIONS) else "PHOTO"
        payload["media"] = [{"mediaFormat": media_format, "sourceUrl": post.media_url}]

    return payload


class GoogleBusinessClient:
    """Publisher adapter bound to one tenant's OAuth access token."""

    def __init__(self, access_token: str, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.access_token = access_token
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _error_from_response(response: requests.Response, action: str) -> ExternalServiceError:
        status = response.status_code
        text = response.text
        reason = None
        try:
            error = response.json().get("error", {})
            for detail in error.get("details", []) or []:
                for error_detail in detail.get("errorDetails", []) or []:
                    if error_detail.get("code"):
                        reason = str(error_detail["code"])
                        break
                if reason:
                    break
            reason = reason or error.get("status")
        except (ValueError, AttributeError):
            pass

        return ExternalServiceError(
            f"Failed to {action}: {status} - {text}",
            service=SERVICE,
            upstream_status=status,
            reason=reason,
            retryable=status == 429 or status >= 500,
        )

    def _post(self, url: str, payload: Dict[str, Any], action: str) -> Dict[str, Any]:
        try:
            response = self.session.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.settings.http_timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ExternalServiceError(
                f"Failed to {action}: network error: {exc}",
                service=SERVICE,
                reason="NETWORK_ERROR",
                retryable=True,
            ) from exc
        except requests.RequestException as exc:
            raise ExternalServiceError(
                f"Failed to {action}: {exc}",
                service=SERVICE,
            ) from exc

        if not response.ok:
            raise self._error_from_response(response, action)

        try:
            return response.json()
        except ValueError:
            return {}

    @timed(publisher_logger)
    def create_question(self, location_id: str, text: str) -> Dict[str, Any]:
        if len((text or "").strip()) < self.settings.min_question_length:
            raise ExternalServiceError(
                f"Question text must be at least {self.settings.min_question_length} characters",
                service=SERVICE,
                reason="QUESTION_TEXT_TOO_SHORT",
            )
        url = f"{self.settings.google_qanda_base_url}/{qanda_location(location_id)}/questions"
        result = self._post(url, {"text": text}, "create question")
        return {"external_question_id": result.get("name"), "response": result}

    @timed(publisher_logger)
    def upsert_answer(self, external_question_id: str, text: str) -> Dict[str, Any]:
        url = f"{self.settings.google_qanda_base_url}/{external_question_id}/answers:upsert"
        result = self._post(url, {"answer": {"text": text}}, "upsert answer")
        return {"external_answer_id": result.get("name"), "response": result}

    @timed(publisher_logger)
    def create_post(self, location_id: str, post_payload: Dict[str, Any], account_name: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.settings.google_posts_base_url}/{location_path(account_name, location_id)}/localPosts"
        result = self._post(url, post_payload, "create post")
        return {"external_post_id": result.get("name"), "search_url": result.get("searchUrl"), "response": result}
