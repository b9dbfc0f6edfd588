import pytest

from snap_steps.browser.exceptions import ContractViolation
from snap_steps.browser.models import Locator, SelectorType
from snap_steps.browser.selectors import (
    DOCUMENT_ROOT,
    position_path,
    prepend,
    split_union,
    strip_position,
    to_query,
    to_relative_xpath,
    xpath_literal,
)


def test_xpath_literal_quotes():
    assert xpath_literal("plain") == "'plain'"
    assert xpath_literal("it's") == '"it\'s"'
    assert xpath_literal("""both ' and " """) == (
        "concat('both ', \"'\", ' and \" ')"
    )


def test_split_union_ignores_pipes_in_predicates_and_strings():
    xpath = "//a[@title = 'x | y'] | //b[count(.//c | .//d) > 1]"

    assert split_union(xpath) == ["//a[@title = 'x | y']", "//b[count(.//c | .//d) > 1]"]


def test_prepend_anchors_every_branch():
    assert prepend("//html", ".//a | //b | c") == "//html/.//a | //html//b | //html/c"
    assert prepend("//html", "//html//a") == "//html//a"


def test_prepend_anchors_inside_leading_parentheses():
    assert prepend("//html", "(//a)[2]") == "(//html//a)[2]"
    assert prepend("//html", "(.//a | //b)[1]/span | //c") == (
        "(//html/.//a | //html//b)[1]/span | //html//c"
    )
    assert to_query(Locator.xpath("(//a)[2]")) == "(//html//a)[2]"


def test_prepend_wraps_union_prefix():
    assert prepend("//div | //section", ".//a") == "(//div | //section)/.//a"


def test_css_locator_becomes_absolute_query():
    query = to_query(Locator.css("#page-mast a"))

    assert query.startswith(DOCUMENT_ROOT + "/descendant-or-self::")
    assert "@id = 'page-mast'" in query


def test_named_locator_embeds_text_as_literal():
    xpath = to_relative_xpath(Locator.named(SelectorType.LINK, "Bob's course"))

    assert "%locator%" not in xpath
    assert '"Bob\'s course"' in xpath


def test_query_under_container_uses_node_path():
    container = position_path("//html//div[@id='fixy-mobile-menu']", 1)

    query = to_query(Locator.xpath(".//a"), container)

    assert query == "(//html//div[@id='fixy-mobile-menu'])[1]/.//a"


def test_strip_position_recovers_the_query():
    query = "//html//a[@href] | //html//*[@role = 'link']"

    assert strip_position(position_path(query, 4)) == query


def test_strip_position_ignores_line_breaks():
    assert strip_position("(//html\n//li)[2]") == "//html//li"


@pytest.mark.parametrize("path", ["//html//a[1]", "(//html//a)", "(//html//a)[x]"])
def test_strip_position_rejects_other_shapes(path):
    with pytest.raises(ContractViolation, match="Failed to extract xpath"):
        strip_position(path)
