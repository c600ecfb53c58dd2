from bkn.sections import (
    FENCE_BODY,
    HEADING,
    TABLE_ROW,
    find_leading_record_id,
    find_section,
    find_table,
    first_fenced_block,
    iter_blockquotes,
    iter_record_regions,
    split_subsections,
    tokenize,
)

MULTI = """# Network

## Entity: pod

**Pod** - workload

### 数据来源

| 类型 | ID |
|------|-----|
| data_view | v1 |

## Relation: pod_node

| 起点 | 终点 | 类型 |
|------|------|------|
| pod | node | direct |

## Entity: node

**Node** - machine

# Appendix

## Notes
"""


class TestTokenize:
    def test_classifies_lines(self):
        tokens = tokenize("## Title\n| a |\n|---|\n> quote\ntext")
        assert [t.kind for t in tokens] == [HEADING, TABLE_ROW, "divider", "blockquote", "text"]
        assert tokens[0].level == 2
        assert tokens[0].title == "Title"

    def test_headings_inside_fences_are_not_headings(self):
        tokens = tokenize("```yaml\n## not a heading\n```\n## real")
        assert tokens[1].kind == FENCE_BODY
        assert tokens[3].kind == HEADING

    def test_fence_closes_only_on_same_marker(self):
        tokens = tokenize("~~~\n```\n## inside\n~~~\n## outside")
        assert [t.kind for t in tokens] == ["fence", FENCE_BODY, FENCE_BODY, "fence", HEADING]

    def test_unclosed_fence_is_plain_text(self):
        tokens = tokenize("```yaml\ncondition:\n## Entity: pod\n```json\n{}\n~~~")
        assert [t.kind for t in tokens] == ["text", "text", HEADING, "text", "text", "text"]


class TestRecordRegions:
    def test_regions_per_kind(self):
        entities = list(iter_record_regions(MULTI, "Entity"))
        assert [record_id for record_id, _ in entities] == ["pod", "node"]
        relations = list(iter_record_regions(MULTI, "Relation"))
        assert [record_id for record_id, _ in relations] == ["pod_node"]

    def test_region_ends_at_next_record_header(self):
        _, body = next(iter_record_regions(MULTI, "Entity"))
        assert "data_view | v1" in body
        assert "起点" not in body

    def test_region_ends_at_top_level_heading(self):
        regions = dict(iter_record_regions(MULTI, "Entity"))
        assert regions["node"] == "**Node** - machine"

    def test_record_header_inside_fence_is_ignored(self):
        text = "```\n## Entity: fake\n```\n## Entity: real\n"
        assert [i for i, _ in iter_record_regions(text, "Entity")] == ["real"]

    def test_deeper_record_headers_are_not_regions(self):
        assert list(iter_record_regions("### Entity: pod\n", "Entity")) == []

    def test_find_leading_record_id(self):
        assert find_leading_record_id(MULTI, "Relation") == "pod_node"
        assert find_leading_record_id(MULTI, "Action") is None


class TestFindSection:
    def test_body_stops_at_same_level_heading(self):
        text = "### A\nbody a\n#### sub\nnested\n### B\nbody b"
        section = find_section(text, "A", (3,))
        assert section.body == "body a\n#### sub\nnested"
        assert section.depth == 3

    def test_deeper_heading_does_not_end_section(self):
        section = find_section("### 逻辑属性\n#### cpu\n- x\n", "逻辑属性", (3,))
        assert "#### cpu" in section.body

    def test_first_matching_depth_wins(self):
        text = "### S\nthree\n## S\ntwo\n"
        assert find_section(text, "S", (2, 3)).body == "two"
        assert find_section(text, "S", (3,)).body == "three"

    def test_title_must_match_exactly(self):
        assert find_section("### 数据属性扩展\nx\n", "数据属性", (3,)) is None

    def test_missing_section(self):
        assert find_section("plain text", "数据来源", (2, 3)) is None


def test_split_subsections():
    text = "#### a\none\n#### b\ntwo\n##### deep\nthree\n"
    sections = split_subsections(text, 4)
    assert [s.title for s in sections] == ["a", "b"]
    assert sections[1].body == "two\n##### deep\nthree"


def test_first_fenced_block():
    text = "```json\n{}\n```\n```yaml\ncondition:\n  field: x\n```\n"
    assert first_fenced_block(text) == "condition:\n  field: x"
    assert first_fenced_block("no fences") is None


def test_find_table_matches_header_run():
    text = "| 类型 | ID |\n|---|---|\n| a | b |\n\n| 起点 | 终点 | 类型 |\n|---|---|---|\n| pod | node | direct |\ntrailing"
    table = find_table(text, ["起点", "终点", "类型"])
    assert table.splitlines()[0].startswith("| 起点")
    assert "trailing" not in table
    assert find_table(text, ["绑定实体"]) is None


def test_find_table_matches_run_after_leading_columns():
    text = "| 名称 | 起点 | 终点 | 类型 |\n|---|---|---|---|\n| x | pod | node | direct |\n"
    table = find_table(text, ["起点", "终点", "类型"])
    assert table.splitlines()[0].startswith("| 名称")
    assert find_table(text, ["起点", "类型"]) is None


def test_iter_blockquotes_skips_fenced_lines():
    text = "> real\n```\n> fenced\n```\n"
    assert list(iter_blockquotes(text)) == ["> real"]
