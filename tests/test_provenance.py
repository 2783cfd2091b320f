"""Tests for manifest lookup and identity hashing."""
import json

from global_context.analyzer.identity import derive_identity, identity_source
from global_context.analyzer.provenance import find_manifest, read_manifest, resolve_provenance


class TestIdentity:

    def test_stable_for_same_input(self):
        assert derive_identity("src/Foo.py", "Foo") == derive_identity("src/Foo.py", "Foo")

    def test_short_hex_string(self):
        identity = derive_identity("src/Foo.py", "Foo")
        assert len(identity) == 12
        int(identity, 16)

    def test_differs_when_either_input_differs(self):
        base = derive_identity("src/Foo.py", "Foo")
        assert derive_identity("src/Bar.py", "Foo") != base
        assert derive_identity("src/Foo.py", "Bar") != base

    def test_windows_separators_are_normalized(self):
        from pathlib import PureWindowsPath

        assert identity_source(PureWindowsPath("src\\Foo.py"), "Foo") == "src/Foo.py@Foo"
        assert derive_identity(PureWindowsPath("src\\Foo.py"), "Foo") == derive_identity("src/Foo.py", "Foo")


class TestManifest:

    def test_nearest_manifest_wins(self, tmp_path):
        (tmp_path / "package.json").write_text('{"name": "outer", "version": "1.0.0"}')
        inner = tmp_path / "libs" / "inner"
        (inner / "src").mkdir(parents=True)
        (inner / "pyproject.toml").write_text('[project]\nname = "inner"\nversion = "0.2.0"\n')

        assert find_manifest(inner / "src") == (inner / "pyproject.toml").resolve()
        provenance = resolve_provenance(inner / "src" / "mod.py")
        assert provenance.package_name == "inner"
        assert provenance.relative_path(inner / "src" / "mod.py") == "src/mod.py"

    def test_pyproject_preferred_over_package_json_in_same_dir(self, tmp_path):
        (tmp_path / "package.json").write_text('{"name": "js", "version": "1.0.0"}')
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "py"\nversion = "1.0.0"\n')
        assert read_manifest(find_manifest(tmp_path)).package_name == "py"

    def test_poetry_metadata(self, tmp_path):
        manifest = tmp_path / "pyproject.toml"
        manifest.write_text('[tool.poetry]\nname = "poetic"\nversion = "3.1.0"\n')
        provenance = read_manifest(manifest)
        assert (provenance.package_name, provenance.package_version) == ("poetic", "3.1.0")

    def test_dynamic_version_is_unusable(self, tmp_path):
        manifest = tmp_path / "pyproject.toml"
        manifest.write_text('[project]\nname = "dyn"\ndynamic = ["version"]\n')
        assert read_manifest(manifest) is None

    def test_malformed_json_is_unusable(self, tmp_path):
        manifest = tmp_path / "package.json"
        manifest.write_text("{not json")
        assert read_manifest(manifest) is None

    def test_non_string_fields_are_unusable(self, tmp_path):
        manifest = tmp_path / "package.json"
        manifest.write_text(json.dumps({"name": "pkg", "version": 1}))
        assert read_manifest(manifest) is None

    def test_no_manifest(self, tmp_path):
        assert find_manifest(tmp_path, names=("no-such-manifest.json",)) is None
