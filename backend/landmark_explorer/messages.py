"""User-facing message catalogue.

Korean strings follow the wording of the original web client; English is the
default. Unknown locales fall back to English, unknown keys to the key itself.
"""

from __future__ import annotations

from landmark_explorer.config import settings

DEFAULT_LOCALE = "en"

QUOTA_HELP_LINKS = [
    "https://ai.google.dev/gemini-api/docs/rate-limits",
    "https://aistudio.google.com/app/apikey",
]

_CATALOGUE: dict[str, dict[str, str]] = {
    "en": {
        "stage.identifying": "Identifying the landmark...",
        "stage.fetching_history": "Searching its history...",
        "stage.generating_speech": "Creating the audio guide...",
        "error.stage_failed": "[{stage}] failed: {detail}",
        "error.transient": "Something went wrong. Please try again.",
        "error.no_audio_produced": "No audio came back for the narration.",
        "error.no_image_produced": "No image came back for the artwork.",
        "error.not_a_landmark": (
            "We couldn't recognize a landmark in this photo. Try another picture."
        ),
        "error.invalid_credential": (
            "The API key was rejected and has been removed. Please enter a valid key."
        ),
        "error.quota_exhausted": (
            "The API quota for this key is used up. Check your plan or wait before "
            "starting again."
        ),
        "validation.credential_required": "Enter a Gemini API key first.",
        "validation.audience_level_required": "Choose an audience level first.",
        "validation.question_required": "Type a question first.",
        "validation.explorer_name_required": "Enter a name for the certificate.",
        "widget.fun_fact_failed": "Couldn't fetch a fun fact.",
        "widget.chat_failed": "Sorry, something went wrong while answering.",
        "widget.artwork_failed": "Artwork generation failed. Please try again.",
        "certificate.title": "Certificate of Completion",
        "certificate.subtitle": "Photo Landmark Explorer",
        "certificate.explorer": "Explorer: {name}",
        "certificate.body_1": "This certifies that the explorer above has",
        "certificate.body_2": "successfully visited the following landmarks",
        "certificate.body_3": "with the Photo Landmark Explorer programme.",
        "certificate.more": "... and {count} more",
        "certificate.date": "{month}/{day}/{year}",
        "certificate.signature": "AI Docent",
    },
    "ko": {
        "stage.identifying": "랜드마크 식별 중...",
        "stage.fetching_history": "역사 정보 검색 중...",
        "stage.generating_speech": "오디오 가이드 생성 중...",
        "error.stage_failed": "[{stage}] 단계에서 오류가 발생했습니다: {detail}",
        "error.transient": "알 수 없는 오류가 발생했습니다. 다시 시도해주세요.",
        "error.no_audio_produced": "오디오 데이터를 응답에서 찾을 수 없습니다.",
        "error.no_image_produced": "생성된 아트워크 이미지를 찾을 수 없습니다.",
        "error.not_a_landmark": "사진에서 랜드마크를 찾지 못했습니다. 다른 사진을 사용해보세요.",
        "error.invalid_credential": "API 키가 유효하지 않아 삭제되었습니다. 올바른 키를 다시 입력해주세요.",
        "error.quota_exhausted": "API 사용량 한도를 초과했습니다. 요금제를 확인하거나 잠시 후 다시 시작해주세요.",
        "validation.credential_required": "먼저 Gemini API 키를 입력해주세요.",
        "validation.audience_level_required": "먼저 설명 수준을 선택해주세요.",
        "validation.question_required": "질문을 입력해주세요.",
        "validation.explorer_name_required": "인증서에 사용할 이름을 입력해주세요.",
        "widget.fun_fact_failed": "재미있는 사실을 가져오는 데 실패했습니다.",
        "widget.chat_failed": "죄송합니다, 답변을 생성하는 중에 오류가 발생했습니다.",
        "widget.artwork_failed": "아트웍 생성에 실패했습니다. 다시 시도해주세요.",
        "certificate.title": "수료증",
        "certificate.subtitle": "Certificate of Completion",
        "certificate.explorer": "탐험가: {name}",
        "certificate.body_1": "위 탐험가는 포토 랜드마크 탐험가 프로그램을 통해",
        "certificate.body_2": "아래의 랜드마크를 성공적으로 탐험하였기에",
        "certificate.body_3": "이 증서를 수여합니다.",
        "certificate.more": "... 외 {count}곳",
        "certificate.date": "{year}년 {month}월 {day}일",
        "certificate.signature": "AI 도슨트",
    },
}


def t(key: str, locale: str | None = None, **kwargs: object) -> str:
    """Look up a message and format it with ``kwargs``."""
    table = _CATALOGUE.get(locale or settings.locale) or _CATALOGUE[DEFAULT_LOCALE]
    template = table.get(key) or _CATALOGUE[DEFAULT_LOCALE].get(key, key)
    return template.format(**kwargs) if kwargs else template
