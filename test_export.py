import contextlib
import io
import json
import re
import unittest

import export
import shaders
from params import TuningParameters


class ExportTest(unittest.TestCase):
    def test_shader_exports_are_verbatim_and_parameter_independent(self):
        defaults = TuningParameters.defaults()
        tweaked = defaults.with_value("masterGain", 4.0).with_value("parallaxAmount", 0.2)
        for params in (defaults, tweaked):
            self.assertEqual(export.get_export("vertex", params), shaders.VERTEX_SHADER_SOURCE)
            self.assertEqual(export.get_export("fragment", params), shaders.FRAGMENT_SHADER_SOURCE)

    def test_settings_exports(self):
        params = TuningParameters.defaults().with_value("tiltAmount", 0.1)
        self.assertEqual(json.loads(export.get_export("json", params))["tiltAmount"], 0.1)
        self.assertIn("tiltAmount = 0.100", export.get_export("text", params))

    def test_unknown_tab(self):
        with self.assertRaises(ValueError):
            export.get_export("png", TuningParameters.defaults())

    def test_bundle_contains_everything(self):
        bundle = export.export_bundle(TuningParameters.defaults())
        self.assertIn('"masterGain": 2.49', bundle)
        self.assertIn("void main()", bundle)
        self.assertIn("remapDepth", bundle)

    def test_print_export(self):
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            export.print_export(TuningParameters.defaults())
        self.assertTrue(buf.getvalue().startswith("[EXPORT]"))


class ShaderContractTest(unittest.TestCase):
    def _declared(self, source, qualifier):
        return set(re.findall(rf"^{qualifier}\s+\w+\s+(\w+);", source, re.MULTILINE))

    def test_attributes_are_declared(self):
        inputs = self._declared(shaders.VERTEX_SHADER_SOURCE, "in")
        self.assertEqual(inputs, {shaders.ATTR_POSITION, shaders.ATTR_TEXCOORD})

    def test_every_parameter_has_a_uniform(self):
        uniforms = self._declared(shaders.VERTEX_SHADER_SOURCE, "uniform") \
            | self._declared(shaders.FRAGMENT_SHADER_SOURCE, "uniform")
        self.assertEqual(set(shaders.PARAM_UNIFORMS), set(TuningParameters.defaults().to_dict()))
        for name in shaders.PARAM_UNIFORMS.values():
            self.assertIn(name, uniforms)
        for name in (shaders.U_RESOLUTION, shaders.U_MOUSE_POS, shaders.U_IMAGE_RESOLUTION,
                     shaders.U_BASE_TEXTURE, shaders.U_DEPTH_TEXTURE):
            self.assertIn(name, uniforms)

    def test_varyings_match_between_stages(self):
        outs = self._declared(shaders.VERTEX_SHADER_SOURCE, "out")
        ins = self._declared(shaders.FRAGMENT_SHADER_SOURCE, "in")
        self.assertEqual(outs, ins)

    def test_gles_header_swap(self):
        es = shaders.for_context(shaders.FRAGMENT_SHADER_SOURCE, is_gles=True)
        self.assertTrue(es.startswith("#version 300 es\nprecision highp float;"))
        self.assertEqual(shaders.for_context(shaders.FRAGMENT_SHADER_SOURCE, is_gles=False),
                         shaders.FRAGMENT_SHADER_SOURCE)


if __name__ == "__main__":
    unittest.main()
