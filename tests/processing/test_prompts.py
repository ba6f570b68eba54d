import pytest
from pydantic import ValidationError

from eyeris.domain.prompt_spec import (
    AnalysisConfig,
    CategoryKind,
    ContentCategory,
    PromptFormat,
    PromptSpec,
)
from eyeris.processing.prompts import JSON_REQUIRED_KEYS, TOGGLE_INSTRUCTIONS, build_prompt


def test_json_prompt_enumerates_required_schema():
    """The structured format always carries explicit schema markers and validation rules."""
    text = build_prompt(PromptSpec(format=PromptFormat.JSON))

    for key in JSON_REQUIRED_KEYS:
        assert f'"{key}"' in text
    assert "STRICT JSON OUTPUT REQUIRED" in text
    assert "VALIDATION STEPS" in text
    assert "REQUIRED OUTPUT STRUCTURE" in text


def test_json_is_the_default_format():
    assert PromptSpec().format == PromptFormat.JSON
    assert '"classification"' in build_prompt(PromptSpec())


@pytest.mark.parametrize(
    "spec, expected",
    [
        (PromptSpec(format=PromptFormat.CONCISE), "Briefly describe what you see in this image."),
        (PromptSpec(format=PromptFormat.DETAILED), "Describe this image in detail"),
        (PromptSpec(format=PromptFormat.LIST), "List the main elements and features"),
        (PromptSpec(format=PromptFormat.DISCOVERY), "Discover and describe"),
        (
            PromptSpec(format=PromptFormat.CATEGORY_SPECIFIC, category="product"),
            "Analyze this product image with relevant domain-specific details.",
        ),
        (
            PromptSpec(format=PromptFormat.PLATFORM_SPECIFIC, platform="instagram"),
            "Analyze this instagram content with platform-specific considerations.",
        ),
    ],
)
def test_format_templates(spec: PromptSpec, expected: str):
    assert expected in build_prompt(spec)


def test_custom_format_lists_every_trait():
    spec = PromptSpec(format=PromptFormat.CUSTOM, traits=["brand_safety", "viral_potential"])

    text = build_prompt(spec)

    assert text.startswith("Analyze this image for the following aspects:")
    assert "- brand_safety" in text
    assert "- viral_potential" in text


def test_prompt_is_deterministic():
    spec = PromptSpec(
        format=PromptFormat.DETAILED,
        config=AnalysisConfig(extract_text=True, color_analysis=True, custom_traits=["mood"]),
    )

    assert build_prompt(spec) == build_prompt(spec.model_copy(deep=True))


def test_toggles_only_append_instruction_text():
    base = build_prompt(PromptSpec(format=PromptFormat.CONCISE))
    one = build_prompt(PromptSpec(format=PromptFormat.CONCISE, config=AnalysisConfig(extract_text=True)))
    every = build_prompt(
        PromptSpec(
            format=PromptFormat.CONCISE,
            config=AnalysisConfig(**{field: True for field, _ in TOGGLE_INSTRUCTIONS}),
        )
    )

    assert one.startswith(base)
    assert len(every) > len(one) > len(base)
    for _, instruction in TOGGLE_INSTRUCTIONS:
        assert instruction in every
    assert "Transcribe all visible text exactly as written." in one
    assert "Identify brands" not in one


def test_disabled_toggles_add_nothing():
    spec = PromptSpec(format=PromptFormat.LIST)

    assert build_prompt(spec) == "List the main elements and features present in this image."


def test_category_guidance_is_appended():
    config = AnalysisConfig(content_category=ContentCategory(kind=CategoryKind.RECEIPT))

    text = build_prompt(PromptSpec(format=PromptFormat.CONCISE, config=config))

    assert text.startswith("Briefly describe what you see in this image.")
    assert "This image is a receipt." in text
    assert "line item" in text


def test_screenshot_category_mentions_platform():
    config = AnalysisConfig(content_category=ContentCategory(kind=CategoryKind.SCREENSHOT, platform="iOS"))

    text = build_prompt(PromptSpec(format=PromptFormat.DETAILED, config=config))

    assert "This image is a screenshot." in text
    assert "captured on iOS" in text


def test_discovered_category_lists_confidence_and_traits():
    category = ContentCategory(
        kind=CategoryKind.DISCOVERED,
        name="vintage poster",
        confidence=0.87,
        traits=["typography", "era"],
    )

    text = build_prompt(PromptSpec(format=PromptFormat.CONCISE, config=AnalysisConfig(content_category=category)))

    assert "vintage poster (confidence 0.87)" in text
    assert "typography, era" in text


def test_every_category_has_guidance():
    for kind in CategoryKind:
        if kind == CategoryKind.DISCOVERED:
            continue
        spec = PromptSpec(
            format=PromptFormat.CONCISE,
            config=AnalysisConfig(content_category=ContentCategory(kind=kind)),
        )
        assert kind.value.replace("_", " ") in build_prompt(spec)


def test_config_traits_are_numbered_and_never_truncated():
    traits = [f"trait number {i}" for i in range(1, 201)]
    spec = PromptSpec(format=PromptFormat.CONCISE, config=AnalysisConfig(custom_traits=traits))

    text = build_prompt(spec)

    assert "1. trait number 1" in text
    assert "200. trait number 200" in text


def test_sections_are_appended_in_fixed_order():
    spec = PromptSpec(
        format=PromptFormat.CONCISE,
        config=AnalysisConfig(
            detect_faces=True,
            content_category=ContentCategory(kind=CategoryKind.CHART),
            custom_traits=["accuracy"],
        ),
    )

    text = build_prompt(spec)

    assert text.index("Additionally:") < text.index("This image is a chart.") < text.index("1. accuracy")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"format": PromptFormat.CATEGORY_SPECIFIC},
        {"format": PromptFormat.PLATFORM_SPECIFIC},
        {"format": PromptFormat.CUSTOM},
    ],
)
def test_variants_require_their_payload(kwargs):
    with pytest.raises(ValidationError):
        PromptSpec(**kwargs)


def test_discovered_category_requires_name():
    with pytest.raises(ValidationError):
        ContentCategory(kind=CategoryKind.DISCOVERED)


def test_from_options_parses_flat_strings():
    spec = PromptSpec.from_options(
        format="custom",
        traits="lighting, composition,,",
        content_category="screenshot",
        platform="android",
    )

    assert spec.format == PromptFormat.CUSTOM
    assert spec.traits == ["lighting", "composition"]
    assert spec.config.content_category.kind == CategoryKind.SCREENSHOT
    assert spec.config.content_category.platform == "android"


def test_from_options_rejects_unknown_format():
    with pytest.raises(ValueError):
        PromptSpec.from_options(format="haiku")


def test_from_options_enables_features_and_custom_traits():
    spec = PromptSpec.from_options(
        format="concise",
        features="extract_text, color_analysis",
        custom_traits="mood,lighting",
    )

    assert spec.config.extract_text is True
    assert spec.config.color_analysis is True
    assert spec.config.detect_faces is False
    assert spec.config.custom_traits == ["mood", "lighting"]

    text = build_prompt(spec)
    assert "Transcribe all visible text exactly as written." in text
    assert "Describe the dominant colors and the overall palette." in text
    assert "2. lighting" in text


def test_from_options_rejects_unknown_features():
    with pytest.raises(ValueError, match="Unknown features"):
        PromptSpec.from_options(format="concise", features="extract_text,read_minds")


def test_every_toggle_is_a_feature_name():
    assert AnalysisConfig.toggle_names() == [field for field, _ in TOGGLE_INSTRUCTIONS]
