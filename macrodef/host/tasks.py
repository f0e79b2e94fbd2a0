"""
Built-in tasks
--------------
<echo message="..."/>                     - record a line of build output
<property name="..." value="..."/>        - set a property (overwrite="false" keeps an existing value)
<fail message="..."/>                     - fail the build
<sequential> ... </sequential>            - run nested tasks in order
<macrodef name="..."> ... </macrodef>     - define a macro
<assert-fail message="..."> ... </assert-fail>
                                          - fail unless the nested block fails

Every task also honours ``if="..."`` / ``unless="..."`` (see conditions.py).
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

from macrodef.core.exceptions import BuildFailure, HostExecutionError
from macrodef.services.macros.definition import parse_definition

if TYPE_CHECKING:
    from .project import BuildProject, TaskTable

logger = logging.getLogger(__name__)

_DEFAULT_FAIL_MESSAGE = "No message."
_DEFAULT_ASSERT_FAIL_MESSAGE = "Block expected to fail"


def register_builtin_tasks(tasks: "TaskTable") -> None:

    @tasks.register("echo")
    def echo_task(node: ET.Element, project: "BuildProject") -> None:
        message = node.get("message")
        if message is None:
            message = (node.text or "").strip()
        project.log(project.expand(message))

    @tasks.register("property")
    def property_task(node: ET.Element, project: "BuildProject") -> None:
        name = node.get("name")
        if not name:
            raise HostExecutionError("<property> requires a 'name' attribute")
        overwrite = node.get("overwrite", "true").lower() not in ("false", "off", "0")
        if not overwrite and name in project.properties:
            logger.debug("Property %s already set; not overwritten", name)
            return
        project.properties.set(name, project.expand(node.get("value", "")))

    @tasks.register("fail")
    def fail_task(node: ET.Element, project: "BuildProject") -> None:
        raise BuildFailure(project.expand(node.get("message", _DEFAULT_FAIL_MESSAGE)))

    @tasks.register("sequential")
    def sequential_task(node: ET.Element, project: "BuildProject") -> None:
        project.run_children(node)

    @tasks.register("macrodef")
    def macrodef_task(node: ET.Element, project: "BuildProject") -> None:
        project.macros.define(parse_definition(node, project.namespace))

    @tasks.register("assert-fail")
    def assert_fail_task(node: ET.Element, project: "BuildProject") -> None:
        result = project.run_block(node)
        if result.ok:
            raise BuildFailure(project.expand(node.get("message", _DEFAULT_ASSERT_FAIL_MESSAGE)))
        logger.info("Expected exception: %s", result.error)
        logger.debug("Expected exception _was_ thrown: %r", result.error)
