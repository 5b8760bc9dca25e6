from dynamicso.versioning import base_version, compare_versions, is_valid_version


def test_compare_versions_numeric_not_lexical():
    assert compare_versions("1.2.0", "1.10.0") < 0
    assert compare_versions("1.10.0", "1.2.0") > 0
    assert compare_versions("1.0.0", "1.0.0") == 0
    assert compare_versions("1.0", "1.0.0") == 0


def test_is_valid_version():
    assert is_valid_version("1.0.0")
    assert is_valid_version("10.20.30")
    assert not is_valid_version("1.0")
    assert not is_valid_version("1.0.0-beta")
    assert not is_valid_version("1.0.0\n")
    assert not is_valid_version("\uff11.0.0")
    assert not is_valid_version("")
    assert not is_valid_version(None)


def test_base_version_strips_dedup_suffix():
    assert base_version("3.16.0-1a2b3c4d") == "3.16.0"
    assert base_version("3.16.0-abc-def") == "3.16.0"
    assert base_version("1.0.0") == "1.0.0"
