"""Tests for decoding the sectioned text generator output."""

from __future__ import annotations

from app.services.response_decoder import (
    DEFAULT_MESSAGE,
    clean_platforms,
    clean_titles,
    decode_response,
    extract_sections,
    is_known_platform,
)


def test_decodes_all_three_sections() -> None:
    text = (
        "RECOMMENDATIONS: Inception, The Matrix, Interstellar\n"
        "DETECTED_PLATFORMS: Netflix\n"
        "MESSAGE: Mind-bending picks for a long weekend."
    )

    result = decode_response(text)

    assert result.titles == ["Inception", "The Matrix", "Interstellar"]
    assert result.detected_platforms == ["Netflix"]
    assert result.message == "Mind-bending picks for a long weekend."


def test_long_prose_titles_are_dropped() -> None:
    """Entries of 200+ characters are treated as prose, not titles."""

    keep = "T" * 199
    drop = "x" * 250
    boundary = "y" * 200
    text = f"RECOMMENDATIONS: Heat, {drop}, {keep}, {boundary}\nMESSAGE: ok"

    result = decode_response(text)

    assert result.titles == ["Heat", keep]


def test_platform_section_is_filtered() -> None:
    text = (
        "RECOMMENDATIONS: Heat\n"
        "DETECTED_PLATFORMS: Netflix, none, https://example.com, "
        "Note: user wants streaming, Criterion Channel, Disney Plus\n"
        "MESSAGE: Enjoy."
    )

    result = decode_response(text)

    assert result.detected_platforms == ["Netflix", "Disney Plus"]


def test_missing_message_uses_default() -> None:
    result = decode_response("RECOMMENDATIONS: Heat, Ronin\nDETECTED_PLATFORMS: none")

    assert result.titles == ["Heat", "Ronin"]
    assert result.detected_platforms == []
    assert result.message == DEFAULT_MESSAGE


def test_missing_trailing_sections_are_tolerated() -> None:
    result = decode_response("RECOMMENDATIONS: Heat, Ronin")

    assert result.titles == ["Heat", "Ronin"]
    assert result.detected_platforms == []
    assert result.message == DEFAULT_MESSAGE


def test_markdown_labels_and_multiline_message() -> None:
    text = (
        "**RECOMMENDATIONS:** \"Alien\", [Aliens]\n"
        "**DETECTED_PLATFORMS:**\n"
        "**MESSAGE:** Space horror at its best.\nSleep with the lights on."
    )

    sections = extract_sections(text)
    result = decode_response(text)

    assert sections.platforms == ""
    assert result.titles == ["Alien", "Aliens"]
    assert result.message == "Space horror at its best.\nSleep with the lights on."


def test_empty_recommendations_do_not_swallow_next_section() -> None:
    result = decode_response("RECOMMENDATIONS:\nDETECTED_PLATFORMS: Hulu\nMESSAGE: Sorry.")

    assert result.titles == []
    assert result.detected_platforms == ["Hulu"]
    assert result.message == "Sorry."


def test_garbage_input_yields_defaults() -> None:
    result = decode_response("I cannot help with that.")

    assert result.titles == []
    assert result.detected_platforms == []
    assert result.message == DEFAULT_MESSAGE


def test_known_platform_matching_is_fuzzy() -> None:
    assert is_known_platform("Amazon Prime Video")
    assert is_known_platform("HBO Max")
    assert is_known_platform("apple tv+")
    assert not is_known_platform("Criterion Channel")
    assert not is_known_platform("   ")


def test_clean_helpers_ignore_blank_input() -> None:
    assert clean_titles(None) == []
    assert clean_titles(" , ,") == []
    assert clean_platforms("") == []


def test_message_label_inside_titles_line_is_a_title() -> None:
    text = (
        "RECOMMENDATIONS: Heat, Message: In a Bottle, Ronin\n"
        "MESSAGE: Enjoy."
    )

    result = decode_response(text)

    assert result.titles == ["Heat", "Message: In a Bottle", "Ronin"]
    assert result.message == "Enjoy."


def test_mid_line_message_label_does_not_start_message() -> None:
    result = decode_response("RECOMMENDATIONS: Heat, Message: In a Bottle, Ronin")

    assert len(result.titles) == 3
    assert result.message == DEFAULT_MESSAGE
