import logging
from pathlib import Path

import pytest
from PIL import Image

from tessera.assets import AssetPipeline
from tessera.build import (
    DEFAULT_CONFIG,
    BuildError,
    BuildResult,
    ConfigError,
    build_site,
    load_config,
)

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Test</title>
  <!-- build note -->
  <link rel="stylesheet" href="styles.css">
</head>
<body>
  <component src="header.html"></component>
  <main>
    <img src="images/photo.jpg" alt="Photo" width="50" height="40">
    <img src="images/missing.jpg" width="10" height="10">
    <img src="https://cdn.example.com/remote.jpg" width="10" height="10">
  </main>
  <component src="footer.html"></component>
  <script src="script.js"></script>
</body>
</html>
"""


def create_project(tmp_path: Path) -> Path:
    project = tmp_path
    src = project / "src"
    (src / "components").mkdir(parents=True)
    (src / "images").mkdir()
    (src / "assets" / "fonts").mkdir(parents=True)

    (src / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (src / "components" / "header.html").write_text(
        "<header>\n  <h1>Header</h1>\n</header>", encoding="utf-8"
    )
    (src / "components" / "footer.html").write_text(
        "<footer>Footer</footer>", encoding="utf-8"
    )
    (src / "styles.css").write_text("body {\n  color: red;\n}\n", encoding="utf-8")
    (src / "script.js").write_text("function test(){ return 1 + 1; }", encoding="utf-8")
    (src / "assets" / "fonts" / "body.woff2").write_bytes(b"\x00font-data")
    (src / "assets" / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")

    Image.new("RGB", (200, 100), color="red").save(src / "images" / "photo.jpg")
    Image.new("RGB", (12, 12), color="blue").save(src / "images" / "logo.png")
    (src / "images" / "icon.svg").write_text("<svg></svg>", encoding="utf-8")

    return project


def test_build_site_creates_output(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project)
    assert isinstance(result, BuildResult)
    out = project / "dist"
    assert result.output_dir == out

    html = (out / "index.html").read_text(encoding="utf-8")
    assert "Header" in html and "Footer" in html
    assert "<component" not in html
    assert "build note" not in html
    assert result.components == ["header.html", "footer.html"]

    with Image.open(out / "images" / "photo.jpg") as img:
        assert img.size == (50, 40)
    assert result.resized == [out / "images" / "photo.jpg"]
    assert not (out / "images" / "missing.jpg").exists()

    with Image.open(out / "images" / "logo.png") as img:
        assert img.size == (12, 12)
    assert (out / "images" / "icon.svg").read_text(encoding="utf-8") == "<svg></svg>"
    assert set(result.compressed) == {out / "images" / "logo.png", out / "images" / "icon.svg"}

    assert (out / "styles.css").read_text(encoding="utf-8") == "body {\n  color: red;\n}\n"
    assert (out / "script.js").read_text(encoding="utf-8") == "function test(){ return 1 + 1; }"
    assert (out / "assets" / "fonts" / "body.woff2").read_bytes() == b"\x00font-data"
    assert out / "assets" / "robots.txt" in result.copied
    assert out / "styles.css" in result.copied


def test_build_logs_progress(tmp_path, caplog):
    project = create_project(tmp_path)
    with caplog.at_level(logging.INFO, logger="tessera"):
        build_site(project)
    assert "Resizing and compressing images/photo.jpg to 50x40" in caplog.text
    assert "Compressing logo.png" in caplog.text
    assert "Copied styles.css" in caplog.text
    assert "Copied assets from" in caplog.text
    assert "Build completed!" in caplog.text


def test_build_without_optional_sources(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "index.html").write_text("<p>plain</p>", encoding="utf-8")
    result = build_site(tmp_path)
    assert (tmp_path / "dist" / "index.html").exists()
    assert result.components == []
    assert result.resized == result.compressed == result.copied == []


def test_build_leading_slash_image(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "index.html").write_text(
        '<img src="/images/photo.jpg" width="20" height="20">', encoding="utf-8"
    )
    build_site(project)
    with Image.open(project / "dist" / "images" / "photo.jpg") as img:
        assert img.size == (20, 20)


def test_build_duplicate_sizes_last_wins(tmp_path, caplog):
    project = create_project(tmp_path)
    (project / "src" / "index.html").write_text(
        '<img src="images/photo.jpg" width="20" height="20">'
        '<img src="images/photo.jpg" width="30" height="10">',
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING, logger="tessera.build"):
        result = build_site(project)
    assert "the last size wins" in caplog.text
    assert result.resized == [project / "dist" / "images" / "photo.jpg"]
    with Image.open(project / "dist" / "images" / "photo.jpg") as img:
        assert img.size == (30, 10)


def test_build_image_outside_source_skipped(tmp_path, caplog):
    project = create_project(tmp_path)
    Image.new("RGB", (5, 5)).save(project / "outside.png")
    (project / "src" / "index.html").write_text(
        '<img src="../outside.png" width="2" height="2">', encoding="utf-8"
    )
    with caplog.at_level(logging.WARNING, logger="tessera.build"):
        result = build_site(project)
    assert result.resized == []
    assert "outside the source directory" in caplog.text


def test_build_cleans_output(tmp_path):
    project = create_project(tmp_path)
    stale = project / "dist" / "stale.txt"
    stale.parent.mkdir()
    stale.write_text("old", encoding="utf-8")
    build_site(project)
    assert not stale.exists()


def test_build_without_clean_keeps_existing_images(tmp_path):
    project = create_project(tmp_path)
    out = project / "dist"
    (out / "images").mkdir(parents=True)
    (out / "images" / "logo.png").write_bytes(b"previous build")
    marker = out / "marker.txt"
    marker.write_text("preserved", encoding="utf-8")

    result = build_site(project, clean=False)
    assert marker.exists()
    assert (out / "images" / "logo.png").read_bytes() == b"previous build"
    assert out / "images" / "logo.png" not in result.compressed


def test_build_output_override(tmp_path):
    project = create_project(tmp_path)
    custom = tmp_path / "custom_output"
    result = build_site(project, output_dir=custom)
    assert result.output_dir == custom
    assert (custom / "index.html").exists()
    assert not (project / "dist").exists()


def test_build_with_config(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "pages").mkdir()
    (project / "src" / "index.html").rename(project / "src" / "pages" / "home.html")
    (project / "tessera.yaml").write_text(
        "output_dir: public\nindex: pages/home.html\nminify_static: true\nkeep_comments: true\n",
        encoding="utf-8",
    )
    build_site(project)
    out = project / "public"
    html = (out / "pages" / "home.html").read_text(encoding="utf-8")
    assert "build note" in html
    assert (out / "script.js").read_text(encoding="utf-8").strip() == "function test(){return 1+1;}"
    assert "body{color:red" in (out / "styles.css").read_text(encoding="utf-8")


def test_build_missing_component(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "components" / "footer.html").unlink()
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.source_path == project / "src" / "index.html"
    assert "footer.html" in exc_info.value.message
    assert exc_info.value.original_error is not None


def test_build_missing_index(tmp_path):
    (tmp_path / "src").mkdir()
    with pytest.raises(BuildError) as exc_info:
        build_site(tmp_path)
    assert exc_info.value.message == "Root document not found"


def test_build_missing_src(tmp_path):
    with pytest.raises(FileNotFoundError):
        build_site(tmp_path)


def test_load_config_defaults_and_overrides(tmp_path):
    assert load_config(tmp_path) == DEFAULT_CONFIG

    (tmp_path / "tessera.yaml").write_text("- not a dict", encoding="utf-8")
    assert load_config(tmp_path) == DEFAULT_CONFIG

    (tmp_path / "tessera.yaml").write_text("", encoding="utf-8")
    assert load_config(tmp_path) == DEFAULT_CONFIG

    (tmp_path / "tessera.yaml").write_text(
        "jpeg_quality: 60\nroot_files: [main.css]\nunknown: 1\n", encoding="utf-8"
    )
    config = load_config(tmp_path)
    assert config["jpeg_quality"] == 60
    assert config["root_files"] == ["main.css"]
    assert "unknown" not in config
    assert DEFAULT_CONFIG["jpeg_quality"] == 75


@pytest.mark.parametrize(
    "content",
    [
        "clean: 'yes'\n",
        "jpeg_quality: high\n",
        "jpeg_quality: true\n",
        "jpeg_quality: 0\n",
        "png_compress_level: 10\n",
        "root_files: styles.css\n",
        "src_dir: ''\n",
    ],
)
def test_load_config_rejects_bad_values(tmp_path, content):
    (tmp_path / "tessera.yaml").write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_asset_pipeline_missing_sources(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    pipeline = AssetPipeline(src, tmp_path / "out")
    assert pipeline.run() == ([], [])
    assert not (tmp_path / "out").exists()


def test_asset_pipeline_root_image_copied_verbatim(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "favicon.png").write_bytes(b"raw png bytes")
    pipeline = AssetPipeline(src, tmp_path / "out", root_files=["favicon.png"])
    assert pipeline.copy_static() == [tmp_path / "out" / "favicon.png"]
    assert (tmp_path / "out" / "favicon.png").read_bytes() == b"raw png bytes"


def test_asset_pipeline_nested_images(tmp_path):
    src = tmp_path / "src"
    (src / "images" / "gallery").mkdir(parents=True)
    Image.new("RGB", (4, 4)).save(src / "images" / "gallery" / "one.jpg")
    pipeline = AssetPipeline(src, tmp_path / "out")
    assert pipeline.compress_images() == [tmp_path / "out" / "images" / "gallery" / "one.jpg"]


@pytest.mark.parametrize("output", ["src", ".", ".."])
def test_build_refuses_output_containing_sources(tmp_path, output):
    project = create_project(tmp_path / "site")
    with pytest.raises(ConfigError) as exc_info:
        build_site(project, output_dir=project / output)
    assert "must not contain" in str(exc_info.value)
    assert (project / "src" / "index.html").exists()
    assert (project / "src" / "images" / "photo.jpg").exists()


def test_build_refuses_config_output_at_project_root(tmp_path):
    project = create_project(tmp_path)
    (project / "tessera.yaml").write_text("output_dir: .\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        build_site(project)
    assert (project / "src" / "index.html").exists()
    assert (project / "tessera.yaml").exists()


def test_load_config_invalid_yaml(tmp_path):
    (tmp_path / "tessera.yaml").write_text("output_dir: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as exc_info:
        load_config(tmp_path)
    assert "tessera.yaml" in str(exc_info.value)


def test_build_index_not_utf8(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "index.html").write_bytes(b"\xff\xfe bad")
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.source_path == project / "src" / "index.html"
    assert "not valid UTF-8" in exc_info.value.message


def test_build_component_not_utf8(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "components" / "footer.html").write_bytes(b"\xff\xfe bad")
    with pytest.raises(BuildError) as exc_info:
        build_site(project)
    assert exc_info.value.source_path == project / "src" / "index.html"
    assert "footer.html" in exc_info.value.message
    assert "not valid UTF-8" in exc_info.value.message


def test_build_resized_asset_not_overwritten(tmp_path):
    project = create_project(tmp_path)
    Image.new("RGB", (200, 100), color="green").save(project / "src" / "assets" / "hero.jpg")
    (project / "src" / "index.html").write_text(
        '<img src="assets/hero.jpg" width="20" height="10">', encoding="utf-8"
    )
    result = build_site(project)
    hero = project / "dist" / "assets" / "hero.jpg"
    with Image.open(hero) as img:
        assert img.size == (20, 10)
    assert result.resized == [hero]
    assert hero not in result.copied
    assert project / "dist" / "assets" / "robots.txt" in result.copied


def test_asset_pipeline_run_skips_written(tmp_path):
    src = tmp_path / "src"
    (src / "assets").mkdir(parents=True)
    (src / "assets" / "a.txt").write_text("source", encoding="utf-8")
    (src / "assets" / "b.txt").write_text("source", encoding="utf-8")
    (src / "styles.css").write_text("body{}", encoding="utf-8")
    out = tmp_path / "out"
    (out / "assets").mkdir(parents=True)
    (out / "assets" / "a.txt").write_text("built", encoding="utf-8")
    (out / "styles.css").write_text("built", encoding="utf-8")

    pipeline = AssetPipeline(src, out)
    copied, compressed = pipeline.run(written=[out / "assets" / "a.txt", out / "styles.css"])
    assert copied == [out / "assets" / "b.txt"]
    assert compressed == []
    assert (out / "assets" / "a.txt").read_text(encoding="utf-8") == "built"
    assert (out / "styles.css").read_text(encoding="utf-8") == "built"
    assert (out / "assets" / "b.txt").read_text(encoding="utf-8") == "source"
