"""
Macro Engine Test Suite
=======================
Tests for:
  - Property interpolation
  - PropertyScope overrides (save / override / restore)
  - ElementSubstitution
  - MacroInvocationEngine (binding, materialisation, execution, restoration)
"""

from __future__ import annotations

import pytest

from macrodef.core.exceptions import (
    BuildFailure,
    InvocationDepthExceeded,
    MissingElementBinding,
    PropertyExpansionError,
)
from macrodef.services.macros.interpolation import expand
from macrodef.services.macros.invocation import Invocation
from macrodef.services.macros.scope import PropertyScope
from macrodef.services.macros.substitution import (
    find_placeholders,
    replace_placeholder,
    substitute_elements,
)

from tests.conftest import NS, make_definition, make_project, run_build, xml


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. Interpolation
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestInterpolation:
    def test_plain_text_untouched(self):
        assert expand("no references", {}) == "no references"

    def test_single_reference(self):
        assert expand("v${version}", {"version": "1.2"}) == "v1.2"

    def test_whitespace_inside_braces(self):
        assert expand("${ a }-${b}", {"a": "1", "b": "2"}) == "1-2"

    def test_dotted_names(self):
        assert expand("${build.dir}/out", {"build.dir": "/tmp"}) == "/tmp/out"

    def test_unresolved_reference(self):
        with pytest.raises(PropertyExpansionError) as info:
            expand("${missing}", {})
        assert info.value.reference == "missing"

    def test_empty_reference(self):
        with pytest.raises(PropertyExpansionError) as info:
            expand("${}", {})
        assert info.value.reference is None

    def test_value_is_not_reexpanded(self):
        assert expand("${a}", {"a": "${b}"}) == "${b}"

    def test_empty_value_expands_to_empty_string(self):
        assert expand("[${a}]", {"a": ""}) == "[]"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. PropertyScope
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestPropertyScope:
    def setup_method(self):
        self.scope = PropertyScope({"p": "outer"})

    def test_override_restores_prior_value(self):
        with self.scope.override() as overlay:
            overlay.bind("p", "inner")
            assert self.scope["p"] == "inner"
        assert self.scope["p"] == "outer"

    def test_override_removes_new_bindings(self):
        with self.scope.override() as overlay:
            overlay.bind("q", "new")
            assert "q" in self.scope
        assert "q" not in self.scope

    def test_restore_on_exception(self):
        with pytest.raises(RuntimeError):
            with self.scope.override() as overlay:
                overlay.bind("p", "inner")
                overlay.bind("q", "new")
                raise RuntimeError("boom")
        assert self.scope.as_dict() == {"p": "outer"}

    def test_bind_none_removes_for_duration(self):
        with self.scope.override() as overlay:
            overlay.bind("p", None)
            assert "p" not in self.scope
        assert self.scope["p"] == "outer"

    def test_rebinding_keeps_first_snapshot(self):
        with self.scope.override() as overlay:
            overlay.bind("p", "one")
            overlay.bind("p", "two")
            assert overlay.bound_names == ["p"]
        assert self.scope["p"] == "outer"

    def test_nested_overrides(self):
        with self.scope.override() as outer:
            outer.bind("p", "middle")
            with self.scope.override() as inner:
                inner.bind("p", "inner")
            assert self.scope["p"] == "middle"
        assert self.scope["p"] == "outer"

    def test_expand_uses_scope(self):
        assert self.scope.expand("${p}!") == "outer!"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 3. ElementSubstitution
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _messages(tree):
    return [child.get("message") for child in tree]


class TestSubstitution:
    def setup_method(self):
        self.block = xml('<a><echo message="c1"/><echo message="c2"/></a>')

    def test_each_placeholder_gets_full_sequence(self):
        tree = xml('<sequential><echo message="1"/><a/><echo message="2"/><a/></sequential>')
        replaced = substitute_elements(tree, ["a"], {"a": list(self.block)}, NS)
        assert replaced == 2
        assert _messages(tree) == ["1", "c1", "c2", "2", "c1", "c2"]

    def test_inserted_nodes_are_copies(self):
        tree = xml("<sequential><a/></sequential>")
        substitute_elements(tree, ["a"], {"a": list(self.block)}, NS)
        assert tree[0] is not self.block[0]
        self.block[0].set("message", "changed")
        assert tree[0].get("message") == "c1"

    def test_placeholders_in_document_order(self):
        tree = xml('<sequential><a/><echo message="1"/><a/></sequential>')
        found = find_placeholders(tree, f"{{{NS}}}a")
        assert [p.node for p in found] == [tree[0], tree[2]]
        assert all(p.parent is tree for p in found)

    def test_nested_node_is_not_a_placeholder(self):
        tree = xml("<sequential><inner><a/></inner><a/></sequential>")
        assert substitute_elements(tree, ["a"], {"a": list(self.block)}, NS) == 1
        assert tree[0][0].tag == f"{{{NS}}}a"
        assert _messages(tree)[1:] == ["c1", "c2"]

    def test_missing_binding(self):
        tree = xml("<sequential><a/></sequential>")
        with pytest.raises(MissingElementBinding) as info:
            substitute_elements(tree, ["a"], {}, NS, macro_name="m")
        assert info.value.element == "a"
        assert info.value.macro == "m"
        assert tree[0].tag == f"{{{NS}}}a"

    def test_unused_element_needs_no_binding(self):
        tree = xml('<sequential><echo message="1"/></sequential>')
        assert substitute_elements(tree, ["a"], {}, NS) == 0

    def test_spliced_content_is_not_rescanned(self):
        tree = xml("<sequential><a/></sequential>")
        block = xml("<a><b/></a>")
        substitute_elements(tree, ["a", "b"], {"a": list(block)}, NS)
        assert [child.tag for child in tree] == [f"{{{NS}}}b"]

    def test_empty_block_removes_placeholder(self):
        tree = xml('<sequential><echo message="1"/><a/></sequential>')
        substitute_elements(tree, ["a"], {"a": []}, NS)
        assert _messages(tree) == ["1"]

    def test_tail_text_preserved(self):
        tree = xml("<sequential><a/>after</sequential>")
        replace_placeholder(find_placeholders(tree, f"{{{NS}}}a")[0], list(self.block))
        assert tree[-1].tail == "after"

    def test_foreign_namespace_not_a_placeholder(self):
        tree = xml('<sequential><x:a xmlns:x="urn:other"/></sequential>')
        assert substitute_elements(tree, ["a"], {}, NS) == 0
        assert len(tree) == 1


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 4. MacroInvocationEngine
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

WITH_ELEMENT = """
<macrodef name="wrap">
  <attributes><attribute name="x"/></attributes>
  <elements><element name="a"/></elements>
  <sequential>
    <echo message="before"/>
    <a/>
    <echo message="after"/>
  </sequential>
</macrodef>
"""


class TestMacroInvocationEngine:
    @pytest.fixture(autouse=True)
    def _setup(self, project):
        self.project = project
        self.engine = project.macros.engine

    def test_binds_and_restores(self):
        d = make_definition(
            '<macrodef name="m"><attributes><attribute name="p"/></attributes>'
            '<sequential><echo message="${p}"/></sequential></macrodef>'
        )
        self.project.properties.set("p", "outer")
        self.engine.execute(d, {"p": "inner"})
        assert self.project.messages == ["inner"]
        assert self.project.properties["p"] == "outer"

    def test_restores_on_host_failure(self):
        d = make_definition(
            '<macrodef name="m"><attributes><attribute name="p"/></attributes>'
            '<sequential><echo message="${p}"/><fail message="boom"/><echo message="never"/></sequential>'
            "</macrodef>"
        )
        self.project.properties.set("p", "outer")
        with pytest.raises(BuildFailure, match="boom"):
            self.engine.execute(d, {"p": "inner"})
        assert self.project.messages == ["inner"]
        assert self.project.properties["p"] == "outer"
        assert self.project.indent_level == 0
        assert self.engine.depth == 0

    def test_default_and_property_alias(self):
        d = make_definition(
            '<macrodef name="greet"><attributes>'
            '<attribute name="who" property="greeting.who" default="world"/>'
            '</attributes><sequential><echo message="hello ${greeting.who}"/></sequential></macrodef>'
        )
        self.engine.execute(d)
        self.engine.execute(d, {"who": "there"})
        assert self.project.messages == ["hello world", "hello there"]
        assert "greeting.who" not in self.project.properties

    def test_absent_value_unbinds_for_duration(self):
        d = make_definition(
            '<macrodef name="m"><attributes><attribute name="p"/></attributes>'
            "<sequential><snapshot/></sequential></macrodef>"
        )
        self.project.properties.set("p", "outer")
        self.engine.execute(d)
        assert "p" not in self.project.snapshots[0]
        assert self.project.properties["p"] == "outer"

    def test_call_site_text_expanded_in_caller_scope(self):
        d = make_definition(
            '<macrodef name="m"><attributes><attribute name="ver"/></attributes>'
            '<sequential><echo message="v${ver}"/></sequential></macrodef>'
        )
        self.project.properties.set("release", "1.2")
        self.engine.execute(d, {"ver": "${release}"})
        assert self.project.messages == ["v1.2"]

    def test_expansion_error_restores_earlier_bindings(self):
        d = make_definition(
            '<macrodef name="m"><attributes><attribute name="x"/><attribute name="y"/></attributes>'
            '<sequential><echo message="ran"/></sequential></macrodef>'
        )
        with pytest.raises(PropertyExpansionError):
            self.engine.execute(d, {"x": "1", "y": "${dangling}"})
        assert self.project.messages == []
        assert "x" not in self.project.properties

    def test_missing_element_runs_nothing(self):
        d = make_definition(WITH_ELEMENT)
        self.project.properties.set("x", "outer")
        with pytest.raises(MissingElementBinding):
            self.engine.execute(d, {"x": "inner"}, {})
        assert self.project.messages == []
        assert self.project.properties["x"] == "outer"

    def test_element_splice(self):
        d = make_definition(WITH_ELEMENT)
        block = xml('<a><echo message="inside"/></a>')
        self.engine.execute(d, {"x": "1"}, {"a": list(block)})
        assert self.project.messages == ["before", "inside", "after"]

    def test_template_never_mutated(self):
        d = make_definition(WITH_ELEMENT)
        before = len(d.template_body)
        fingerprint = d.fingerprint
        self.engine.execute(d, {}, {"a": list(xml('<a><echo message="x"/><echo message="y"/></a>'))})
        assert len(d.template_body) == before
        from macrodef.services.macros.fingerprint import compute_fingerprint
        assert compute_fingerprint(d) == fingerprint

    def test_non_instructions_skipped(self):
        d = make_definition(
            '<macrodef name="m"><sequential>text<!-- note --><echo message="a"/>'
            '<x:other xmlns:x="urn:other"/>tail<echo message="b"/></sequential></macrodef>'
        )
        self.engine.execute(d)
        assert self.project.messages == ["a", "b"]

    def test_invocation_from_call_site(self):
        d = make_definition(WITH_ELEMENT)
        node = xml('<wrap x="${v}" extra="ignored"><a><echo message="in"/></a><a><echo message="second"/></a></wrap>')
        inv = Invocation.from_call_site(d, node, NS)
        assert inv.actual_attribute_values == {"x": "${v}"}
        assert [n.get("message") for n in inv.actual_nested_blocks["a"]] == ["in"]

    def test_depth_limit(self, store):
        project = make_project(store)
        with pytest.raises(InvocationDepthExceeded):
            run_build(project, """
                <macrodef name="loop">
                  <attributes><attribute name="p" default="deep"/></attributes>
                  <sequential><loop/></sequential>
                </macrodef>
                <loop/>
            """)
        assert project.macros.engine.depth == 0
        assert "p" not in project.properties


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 5. Dynamic scoping through nested invocations
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestNestedInvocation:
    def test_inner_binding_does_not_leak(self, project):
        messages = run_build(project, """
            <macrodef name="inner">
              <attributes><attribute name="p"/></attributes>
              <sequential><echo message="inner ${p}"/></sequential>
            </macrodef>
            <macrodef name="outer">
              <attributes><attribute name="p"/></attributes>
              <sequential>
                <echo message="outer ${p}"/>
                <inner p="two"/>
                <echo message="outer again ${p}"/>
              </sequential>
            </macrodef>
            <property name="p" value="zero"/>
            <outer p="one"/>
            <echo message="top ${p}"/>
        """)
        assert messages == ["outer one", "inner two", "outer again one", "top zero"]

    def test_repeated_invocation_equals_inlining(self, project, store):
        macro_messages = run_build(project, """
            <macrodef name="twice">
              <sequential><echo message="a"/><echo message="b"/></sequential>
            </macrodef>
            <twice/><twice/><twice/>
        """)
        inline = make_project(store)
        inline_messages = run_build(inline, '<echo message="a"/><echo message="b"/>' * 3)
        assert macro_messages == inline_messages
