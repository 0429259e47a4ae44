"""Tests for the Jinja2 rendering of artifact records."""

import pytest
from idlgen.artifacts import RUNTIME_IMPORT, StructArtifact, describe_module, make_header
from idlgen.errors import GenerationError
from idlgen.render import TemplateRenderer


@pytest.fixture
def rendered(shapes):
    """Rendered Shapes module, keyed by file name."""
    renderer = TemplateRenderer()
    mod = shapes.get_submodule("Shapes")
    return {a.filename: renderer.render(a) for a in describe_module(mod, "shapes", [])}


# -- Header -----------------------------------------------------------------

class TestHeader:
    def test_generated_marker_and_package(self, rendered):
        code = rendered["point.go"]
        assert code.startswith("// Code generated by idlgen. DO NOT EDIT.\n")
        assert "package shapes\n" in code

    def test_runtime_import(self, rendered):
        for code in rendered.values():
            assert f'\t"{RUNTIME_IMPORT}"' in code

    def test_fmt_import_where_used(self, rendered):
        assert '\t"fmt"' in rendered["color.go"]
        assert '\t"fmt"' not in rendered["point.go"]


# -- Types ------------------------------------------------------------------

class TestStruct:
    def test_struct_body(self, rendered):
        code = rendered["point.go"]
        assert "type Point struct {\n\tX float64\n\tY float64\n}" in code

    def test_helper_and_constructor(self, rendered):
        code = rendered["point.go"]
        assert "type PointHelper struct{}" in code
        assert 'return "IDL:example.com/Shapes/Point:1.0"' in code
        assert "func NewPoint() *Point {\n\treturn &Point{}\n}" in code
        assert "Error()" not in code

    def test_exception_implements_error(self, rendered):
        assert "func (e *InvalidShape) Error() string {" in rendered["invalidshape.go"]


class TestEnum:
    def test_iota(self, rendered):
        code = rendered["color.go"]
        assert "\tColor_RED Color = iota\n\tColor_GREEN\n\tColor_BLUE\n" in code
        assert "type Color int32" in code

    def test_string_lookup(self, rendered):
        code = rendered["color.go"]
        assert 'var colorNames = []string{\n\t"RED",\n\t"GREEN",\n\t"BLUE",\n}' in code
        assert "func (e Color) String() string {" in code
        assert "func ColorFromString(name string) (Color, error) {" in code


class TestTypedef:
    def test_alias(self, rendered):
        assert "type PointList = []Point" in rendered["pointlist.go"]


class TestUnion:
    def test_discriminant_and_constants(self, rendered):
        code = rendered["fill.go"]
        assert "\tDiscriminant Color\n" in code
        assert "\tFill_solid_Case Color = Color_RED\n" in code
        assert "\tFill_pattern_Case2 Color = Color_BLUE\n" in code

    def test_case_accessors(self, rendered):
        code = rendered["fill.go"]
        assert "func (u *Fill) SetPattern(value string) {\n\tu.Discriminant = Fill_pattern_Case\n" in code
        assert "func (u *Fill) GetPattern() (value string, ok bool) {" in code
        assert "\tcase Fill_pattern_Case, Fill_pattern_Case2:\n\tdefault:\n\t\treturn\n" in code

    def test_default_case_excludes_other_labels(self, rendered):
        code = rendered["fill.go"]
        assert ("\tcase Fill_solid_Case, Fill_pattern_Case, Fill_pattern_Case2:\n"
                "\t\treturn\n") in code
        assert "func NewFill() *Fill {" in code


class TestInterface:
    def test_method_set(self, rendered):
        code = rendered["canvas.go"]
        assert "\tDraw(points PointList, color Color) (err error)\n" in code
        assert "\tResize(w int32) (result bool, wOut int32, h int32, err error)\n" in code
        assert "\tGetWidth() (int32, error)\n" in code
        assert "SetWidth" not in code
        assert "\tSetTitle(value string) error\n" in code

    def test_narrow(self, rendered):
        code = rendered["canvas.go"]
        assert "func (h *CanvasHelper) Narrow(obj interface{}) (Canvas, error) {" in code
        assert 'fmt.Errorf("object does not implement Canvas")' in code

    def test_stub_forwards_to_invoke(self, rendered):
        code = rendered["canvas.go"]
        assert "\tObjectRef *corba.ObjectRef\n" in code
        assert '_, err = stub.ObjectRef.Invoke("draw", points, color)' in code
        assert 'reply, err := stub.ObjectRef.Invoke("area", a, b)' in code
        assert '_, err = stub.ObjectRef.Invoke("clear")' in code

    def test_stub_checks_result_shape(self, rendered):
        code = rendered["canvas.go"]
        assert "if !ok || len(values) != 3 {" in code
        assert "if wOut, ok = values[1].(int32); !ok {" in code

    def test_servant_dispatch(self, rendered):
        code = rendered["canvas.go"]
        assert '\tcase "area":\n' in code
        assert "a0, ok := args[0].(Point)" in code
        assert "return servant.Impl.Area(a0, a1)" in code
        assert "r0, r1, r2, err := servant.Impl.Resize(a0)" in code
        assert "return []interface{}{r0, r1, r2}, nil" in code
        assert '\tcase "_get_width":\n' in code
        assert '\tcase "_set_title":\n' in code
        assert '_set_width' not in code


class TestConstants:
    def test_constants_file(self, rendered):
        code = rendered["constants.go"]
        assert "\tMAX_POINTS int32 = 64\n" in code
        assert '\tUNIT string = "mm"\n' in code


class TestRenderer:
    def test_missing_template_raises_generation_error(self):
        class Bogus(StructArtifact):
            template = "nope.go.jinja2"

        art = Bogus(name="X", filename="x.go", header=make_header("p", []),
                    repository_id="IDL:X:1.0")
        with pytest.raises(GenerationError, match="nope.go.jinja2"):
            TemplateRenderer().render(art)
