"""
Generic helper steps (clicks, text and existence assertions, page readiness,
form filling) that the theme steps compose.
"""

import structlog

from ..browser.exceptions import ExpectationFailure
from ..browser.models import NO_FURTHER_STEPS, Locator, SelectorType, StepResult
from .base import BaseSteps, locator_for

logger = structlog.get_logger(__name__)

# True once the page has loaded and no Moodle JS is pending.
PAGE_READY_JS = (
    "(typeof M !== 'undefined' && M.util && M.util.pending_js"
    " && !Boolean(M.util.pending_js.length)) && (document.readyState === 'complete')"
)


class GeneralSteps(BaseSteps):
    async def wait_until_the_page_is_ready(self) -> StepResult:
        timeout_ms = self.timeouts.default.timeout_ms
        if not await self.session.wait(timeout_ms, PAGE_READY_JS):
            logger.warning("Page not ready in time, carrying on.", timeout_ms=timeout_ms)
        return NO_FURTHER_STEPS

    async def i_click_on(self, element: str, selector_type: str) -> StepResult:
        node = await self.get_selected_node(selector_type, element)
        await self.ensure_node_is_visible(node)
        await node.click()
        return NO_FURTHER_STEPS

    async def i_click_on_in_the(
        self,
        element: str,
        selector_type: str,
        container_element: str,
        container_type: str,
    ) -> StepResult:
        node = await self.get_node_in_container(
            selector_type, element, container_type, container_element
        )
        await self.ensure_node_is_visible(node)
        await node.click()
        return NO_FURTHER_STEPS

    async def click_link(self, link: str) -> StepResult:
        return await self.i_click_on(link, SelectorType.LINK.value)

    async def assert_page_not_contains_text(self, text: str) -> StepResult:
        for node in await self.find_all(Locator.named(SelectorType.TEXT, text)):
            if await node.is_visible():
                raise self.expectation(f'"{text}" text was found in the page')
        return NO_FURTHER_STEPS

    async def assert_element_contains_text(
        self, text: str, element: str, selector_type: str
    ) -> StepResult:
        container = await self.get_selected_node(selector_type, element)
        content = await container.get_text()
        if text not in content:
            raise self.expectation(
                f'"{text}" text was not found in the "{element}" element'
            )
        return NO_FURTHER_STEPS

    async def assert_element_not_contains_text(
        self, text: str, element: str, selector_type: str
    ) -> StepResult:
        container = await self.get_selected_node(selector_type, element)
        content = await container.get_text()
        if text in content:
            raise self.expectation(f'"{text}" text was found in the "{element}" element')
        return NO_FURTHER_STEPS

    async def should_exist(self, element: str, selector_type: str) -> StepResult:
        await self.ensure_element_exists(element, selector_type)
        return NO_FURTHER_STEPS

    async def should_not_exist(self, element: str, selector_type: str) -> StepResult:
        await self.ensure_element_does_not_exist(element, selector_type)
        return NO_FURTHER_STEPS

    async def should_be_visible(self, element: str, selector_type: str) -> StepResult:
        node = await self.get_selected_node(selector_type, element)
        if not await node.is_visible():
            raise self.expectation(f'"{element}" "{selector_type}" should be visible')
        return NO_FURTHER_STEPS

    async def should_appear_before(
        self,
        pre_element: str,
        pre_selector_type: str,
        post_element: str,
        post_selector_type: str,
    ) -> StepResult:
        pre = await self.get_selected_node(pre_selector_type, pre_element)
        post = await self.get_selected_node(post_selector_type, post_element)
        # count(. | X) = count(X) holds only when the context node is in X.
        query = f"{pre.xpath}/following::*[count(. | {post.xpath}) = count({post.xpath})]"
        if await self.session.count_nodes(query) == 0:
            raise self.expectation(
                f'"{pre_element}" "{pre_selector_type}" does not appear before '
                f'"{post_element}" "{post_selector_type}"'
            )
        return NO_FURTHER_STEPS


class FormSteps(BaseSteps):
    EXPAND_ALL = ".collapsible-actions a.collapseexpand:not(.collapse-all)"

    async def i_set_the_field_to(self, field: str, value: str) -> StepResult:
        node = await self.find(
            locator_for(field, SelectorType.FIELD),
            ExpectationFailure(f'Form field "{field}" not found', self.session),
        )
        await node.set_value(value)
        return NO_FURTHER_STEPS

    async def i_set_the_field_with_xpath_to(self, xpath: str, value: str) -> StepResult:
        node = await self.find(
            Locator.xpath(xpath),
            ExpectationFailure(f'Form field with xpath "{xpath}" not found', self.session),
        )
        await node.set_value(value)
        return NO_FURTHER_STEPS

    async def press_button(self, button: str) -> StepResult:
        node = await self.find(locator_for(button, SelectorType.BUTTON))
        await node.click()
        return NO_FURTHER_STEPS

    async def i_expand_all_fieldsets(self) -> StepResult:
        node = await self.session.find(Locator.css(self.EXPAND_ALL))
        # Forms without collapsible sections have no link.
        if node is not None and await node.is_visible():
            await node.click()
        return NO_FURTHER_STEPS
