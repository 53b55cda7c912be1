"""Basic tests for the cloud_backup package."""


def test_import_cloud_backup():
    """Test that cloud_backup can be imported."""
    import cloud_backup

    assert hasattr(cloud_backup, "__version__")
    assert cloud_backup.__version__ == "1.0.0"


def test_version_format():
    """Test that version follows semver format."""
    import cloud_backup

    parts = cloud_backup.__version__.split(".")
    assert len(parts) == 3
    assert all(p.isdigit() for p in parts)


def test_public_exports_resolve():
    """Every name in __all__ is importable from the package root."""
    import cloud_backup

    for name in cloud_backup.__all__:
        assert hasattr(cloud_backup, name), name
