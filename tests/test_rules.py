from plan_editor.colors import to_rgb_hex
from plan_editor.rules.load_rules import (
    DEFAULT_RULES_PATH,
    PlanRules,
    default_rules,
    load_plan_rules,
    load_rule_pack,
)


def test_bundled_pack_matches_defaults():
    assert load_plan_rules() == PlanRules()
    pack = load_rule_pack(str(DEFAULT_RULES_PATH))
    assert pack["limits"]["max_actions"] == 50


def test_partial_pack_keeps_defaults(tmp_path):
    path = tmp_path / "rules.yml"
    path.write_text(
        "limits:\n  max_actions: 5\n"
        "styles:\n  headings:\n    Title: 1\n    Subtitle: 2\n"
        "named_colors:\n  Brand: '#1a2b3c'\n",
        encoding="utf-8",
    )
    rules = load_plan_rules(str(path))
    assert rules.max_actions == 5
    assert rules.max_blocks_per_action == 100
    assert rules.heading_level("Subtitle") == 2
    assert rules.heading_level("Heading 1") is None
    assert rules.heading_style(1) == "Title"
    assert rules.named_colors == {"brand": "1A2B3C"}


def test_heading_helpers():
    rules = default_rules()
    assert rules.heading_level("Heading 3") == 3
    assert rules.heading_level("Normal") is None
    assert rules.heading_level(None) is None
    assert rules.heading_style(2) == "Heading 2"


def test_color_conversion():
    colors = default_rules().named_colors
    assert to_rgb_hex("#abc", colors) == "AABBCC"
    assert to_rgb_hex("#1a2B3c", colors) == "1A2B3C"
    assert to_rgb_hex("rgba(255, 0, 300, 0.2)", colors) == "FF00FF"
    assert to_rgb_hex("Teal", colors) == "008080"
    assert to_rgb_hex("nope", colors) is None


def test_default_rules_are_not_shared():
    rules = default_rules()
    rules.max_actions = 1
    rules.named_colors["brand"] = "123456"
    fresh = default_rules()
    assert fresh.max_actions == 50
    assert "brand" not in fresh.named_colors
    assert load_plan_rules().max_actions == 50


def test_context_settings_from_pack(tmp_path):
    path = tmp_path / "rules.yml"
    path.write_text("context:\n  section_paragraphs: 1\n  stop_words: [Quarterly]\n", encoding="utf-8")
    rules = load_plan_rules(str(path))
    assert rules.context_section_paragraphs == 1
    assert rules.context_paragraph_chars == 300
    assert rules.context_stop_words == ["quarterly"]
