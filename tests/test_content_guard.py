"""Tests for the content guard."""

from fairway.messages.content_guard import MAX_MATCHED_TEXT_LENGTH, detect, should_block
from fairway.messages.models import ContentFlag, FlagType, GuardMode


def _types(flags):
    return [f.type for f in flags]


def test_clean_text_has_no_flags():
    assert detect("See you at practice tomorrow, bring your clubs") == []


def test_empty_and_missing_text():
    assert detect("") == []
    assert detect("   ") == []
    assert detect(None) == []
    assert detect(None, ["secret"]) == []


def test_detects_email():
    flags = detect("write me at Coach.Jones@example.com please")
    assert flags == [ContentFlag(type=FlagType.email, matched_text="Coach.Jones@example.com")]


def test_detects_phone_numbers():
    flags = detect("call +1 (555) 123-4567 after school")
    assert _types(flags) == [FlagType.phone]
    assert flags[0].matched_text == "+1 (555) 123-4567"

    assert _types(detect("my number is 555-123-4567")) == [FlagType.phone]


def test_short_numbers_are_not_phones():
    assert detect("we played 18 holes and I shot 92") == []


def test_detects_urls():
    assert _types(detect("look at https://example.com/swing")) == [FlagType.url]
    assert _types(detect("visit www.example.org today")) == [FlagType.url]


def test_keywords_case_insensitive_and_normalised():
    flags = detect("Let's keep this a SECRET between us", ["  Secret  "])
    assert flags == [ContentFlag(type=FlagType.keyword, matched_text="secret")]


def test_blank_keywords_ignored():
    assert detect("nothing to see here", ["", "   ", None]) == []


def test_flag_order_is_email_phone_url_keyword():
    text = "secret: a@b.io, 555-123-4567, http://x.example.com"
    flags = detect(text, ["secret"])
    assert _types(flags) == [FlagType.email, FlagType.phone, FlagType.url, FlagType.keyword]


def test_duplicates_are_collapsed_case_insensitively():
    flags = detect("a@b.io and again A@B.IO", ["x", "X"])
    assert len([f for f in flags if f.type == FlagType.email]) == 1
    assert flags[0].matched_text == "a@b.io"


def test_no_duplicate_type_and_text_pairs():
    text = "call 555-123-4567 or 555-123-4567 or mail me@ex.com me@ex.com https://ex.com https://ex.com"
    flags = detect(text, ["call", "CALL"])
    keys = [(f.type, f.matched_text.lower()) for f in flags]
    assert len(keys) == len(set(keys))


def test_matched_text_is_capped():
    long_url = "https://example.com/" + "a" * 300
    flags = detect(long_url)
    assert len(flags) == 1
    assert len(flags[0].matched_text) == MAX_MATCHED_TEXT_LENGTH


def test_flag_to_dict_uses_camel_case():
    flag = ContentFlag(type=FlagType.url, matched_text="www.example.org")
    assert flag.to_dict() == {"type": "url", "matchedText": "www.example.org"}


# -- should_block ---------------------------------------------------------


def test_block_only_for_minor_thread_in_block_mode():
    flags = detect("mail me at kid@example.com")
    assert should_block(GuardMode.block, True, flags) is True
    assert should_block(GuardMode.block, False, flags) is False
    assert should_block(GuardMode.flag, True, flags) is False
    assert should_block(GuardMode.flag, False, flags) is False


def test_never_block_without_flags():
    assert should_block(GuardMode.block, True, []) is False


def test_should_block_accepts_mode_strings():
    flags = [ContentFlag(type=FlagType.keyword, matched_text="secret")]
    assert should_block("block", True, flags) is True
    assert should_block("flag", True, flags) is False
