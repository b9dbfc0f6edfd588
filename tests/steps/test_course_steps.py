from datetime import datetime

import pytest

from conftest import FakeElement
from snap_steps.browser.exceptions import ConfigurationError, ExpectationFailure
from snap_steps.browser.models import NO_FURTHER_STEPS, Locator, Steps
from snap_steps.steps.course import SnapCourseSteps, ordinal

NOW = datetime(2026, 3, 5, 10, 30)


@pytest.fixture
def steps(fake_session, settings, poller) -> SnapCourseSteps:
    return SnapCourseSteps(fake_session, settings, poller, clock=lambda: NOW)


def test_ordinal():
    assert ordinal("1st") == 1
    assert ordinal("22nd") == 22
    assert ordinal(3) == 3
    with pytest.raises(ValueError):
        ordinal("first")


@pytest.mark.asyncio
async def test_single_section_appends_query_parameter(fake_session, steps):
    fake_session.url = "http://moodle.test/course/view.php?id=4"

    await steps.i_go_to_single_course_section(2)

    assert fake_session.visited == ["http://moodle.test/course/view.php?id=4&section=2"]


@pytest.mark.asyncio
async def test_section_navigation_requires_course_page(fake_session, steps):
    fake_session.url = "http://moodle.test/my/"

    with pytest.raises(ExpectationFailure, match="Current page is not a course page!"):
        await steps.i_go_to_course_section(1)


@pytest.mark.asyncio
async def test_go_to_course_section_sets_hash_and_waits(fake_session, steps):
    fake_session.url = "http://moodle.test/course/view.php?id=4"
    fake_session.add(Locator.css("#section-3"), FakeElement(visible_after=3))

    assert await steps.i_go_to_course_section(3) is NO_FURTHER_STEPS
    assert 'location.hash = "section-3";' in fake_session.scripts


@pytest.mark.asyncio
async def test_create_section_expands_to_steps(steps):
    result = await steps.i_create_a_new_section_in_course("Course 1")

    assert isinstance(result, Steps)
    assert result.phrases[1] == 'I follow "Course 1"'
    assert result.phrases[-1] == 'I click on "Create section" "button"'


@pytest.mark.asyncio
async def test_restrict_section_by_date_uses_resolved_date(steps):
    result = await steps.i_restrict_course_section_by_date(1, "tomorrow")

    assert result.phrases[:2] == ("I go to course section 1", 'I follow visible link "Edit section"')
    assert 'I set the field "name" to "Topic tomorrow 1"' in result.phrases
    assert 'I set the field "day" to "6"' in result.phrases
    assert "I set the field with xpath \"//select[@name='x[month]']\" to \"3\"" in result.phrases
    assert 'I set the field "year" to "2026"' in result.phrases
    assert result.phrases[-1] == 'I press "Save changes"'


@pytest.mark.asyncio
async def test_restrict_asset_by_date_saves_and_returns(steps):
    result = await steps.i_restrict_asset_by_date("Test assignment1", "+1 month")

    assert result.phrases[0] == 'I follow asset link "Test assignment1"'
    assert 'I set the field "day" to "5"' in result.phrases
    assert "I set the field with xpath \"//select[@name='x[month]']\" to \"4\"" in result.phrases
    assert result.phrases[-1] == 'I press "Save and return to course"'


@pytest.mark.asyncio
async def test_availability_info(fake_session, steps):
    fake_session.add(
        Locator.css(".snap-conditional-tag"),
        FakeElement(text="Not available unless: The activity Quiz is marked complete"),
    )

    await steps.i_see_availabilityinfo("Not available unless: The activity Quiz is marked complete")
    with pytest.raises(ExpectationFailure, match="Failed to find availability notice"):
        await steps.i_see_availabilityinfo("Something else")
    with pytest.raises(ExpectationFailure, match="Availability notice found in element"):
        await steps.i_dont_see_availabilityinfo(
            "Not available unless: The activity Quiz is marked complete"
        )


@pytest.mark.asyncio
async def test_no_availability_tags_means_not_seen(steps):
    assert await steps.i_dont_see_availabilityinfo("anything") is NO_FURTHER_STEPS


@pytest.mark.asyncio
async def test_available_from_date_in_asset(fake_session, steps):
    fake_session.add(
        Locator.css("#section-1 li.snap-asset:nth-of-type(2)"),
        FakeElement(text="Available from 7 March 2026"),
    )

    assert await steps.i_should_see_available_from_in_asset("+2 days", "2nd", 1) is NO_FURTHER_STEPS
    with pytest.raises(ExpectationFailure, match='"8 March 2026" text was not found'):
        await steps.i_should_see_available_from_in_asset("+3 days", "2nd", 1)
    with pytest.raises(ExpectationFailure, match='"Available from" text was found'):
        await steps.i_should_not_see_available_from_in_asset("+2 days", "2nd", 1)


@pytest.mark.asyncio
async def test_available_from_absent_element_is_not_seen(steps):
    result = await steps.i_should_not_see_available_from_in_section("tomorrow", 4)

    assert result is NO_FURTHER_STEPS


@pytest.mark.asyncio
async def test_toc_item_skips_introduction(steps):
    result = await steps.i_should_see_in_toc_item("Topic 1", 1)

    assert result.phrases == (
        'I should see "Topic 1" in the "#chapters li:nth-of-type(2)" "css_element"',
    )


@pytest.mark.asyncio
async def test_next_navigation_title_and_href(fake_session, steps):
    base = "#section-1 nav.section_footer a.next_section"
    fake_session.add(
        Locator.css(f"{base} span"),
        FakeElement(html='<span class="nav_guide">Next section</span><br>Topic &amp; 2'),
    )
    fake_session.add(
        Locator.css(base),
        FakeElement(attributes={"href": "#section-2", "class": "next_section"}),
    )

    assert (
        await steps.the_next_navigation_for_section_is(1, "Topic & 2", "#section-2")
        is NO_FURTHER_STEPS
    )
    with pytest.raises(ExpectationFailure, match="Next navigation href does not match"):
        await steps.the_next_navigation_for_section_is(1, "Topic & 2", "#section-3")
    with pytest.raises(ExpectationFailure, match="Next title does not match"):
        await steps.the_next_navigation_for_section_is(1, "Topic 3", "#section-2")


@pytest.mark.asyncio
async def test_previous_navigation_hidden_and_visible(fake_session, steps):
    fake_session.add(
        Locator.css("#section-2 nav.section_footer a.previous_section"),
        FakeElement(attributes={"class": "previous_section dimmed_text"}),
    )

    assert await steps.the_previous_navigation_for_section_is_hidden(2) is NO_FURTHER_STEPS
    with pytest.raises(ExpectationFailure, match="Section link should be visible"):
        await steps.the_previous_navigation_for_section_is_visible(2)


@pytest.mark.asyncio
async def test_following_exist_rewrites_timestamps(fake_session, settings, poller):
    received = []

    async def generator(element, rows):
        received.append((element, rows))

    steps = SnapCourseSteps(
        fake_session, settings, poller, data_generator=generator, clock=lambda: NOW
    )
    rows = [
        ["name", "allowsubmissionsfromdate"],
        ["the timestamp of today", "the timestamp of tomorrow"],
    ]

    await steps.the_following_exist("activities", rows)

    element, table = received[0]
    assert element == "activities"
    assert table[0] == ["name", "allowsubmissionsfromdate"]
    assert table[1][0] == "the timestamp of today"
    assert table[1][1] == str(int(datetime(2026, 3, 6).timestamp()))


@pytest.mark.asyncio
async def test_following_exist_needs_a_generator(steps):
    with pytest.raises(ConfigurationError):
        await steps.the_following_exist("courses", [["fullname"], ["Course 1"]])
