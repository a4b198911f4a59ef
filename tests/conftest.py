"""Pytest configuration and fixtures for all tests."""

from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

ANDROID_NS_DECL = 'xmlns:android="http://schemas.android.com/apk/res/android"'

MANIFEST_XML = f"""<?xml version='1.0' encoding='utf-8'?>
<manifest {ANDROID_NS_DECL} android:versionCode="1" android:versionName="0.0.1" package="org.example.app">
    <application android:label="@string/app_name">
        <activity android:name="MainActivity" android:screenOrientation="VAL" />
    </application>
</manifest>
"""

STRINGS_XML = """<?xml version='1.0' encoding='utf-8'?>
<resources>
    <string name="app_name">Old Name</string>
</resources>
"""

PLATFORM_CONFIG_XML = """<?xml version='1.0' encoding='utf-8'?>
<cordova>
    <plugins>
        <plugin name="App" value="org.apache.cordova.App" />
    </plugins>
</cordova>
"""

MAIN_ACTIVITY_JAVA = """package org.example.app;

import org.apache.cordova.CordovaActivity;

public class MainActivity extends CordovaActivity {
}
"""

PROJECT_CONFIG_XML = """<?xml version='1.0' encoding='utf-8'?>
<widget id="com.acme.demo" version="2.1.0" android-versionCode="21">
    <name>Demo App</name>
    <preference name="Orientation" value="portrait" />
    <platform name="android">
        <splash src="res/screen/android/land-hdpi.png" density="land-hdpi" />
    </platform>
</widget>
"""

CHILD_BROWSER_PLUGIN_XML = f"""<?xml version='1.0' encoding='utf-8'?>
<plugin id="com.phonegap.plugins.childbrowser" version="0.6.0" {ANDROID_NS_DECL}>
    <name>Child Browser</name>
    <asset src="www/childbrowser.js" target="childbrowser.js" />
    <platform name="android">
        <config-file target="res/xml/config.xml" parent="/cordova/plugins">
            <plugin name="ChildBrowser" value="com.phonegap.plugins.childBrowser.ChildBrowser" />
        </config-file>
        <config-file target="AndroidManifest.xml" parent="/manifest/application">
            <activity android:name="com.phonegap.plugins.childBrowser.ChildBrowser" android:label="@string/app_name" />
        </config-file>
        <source-file src="src/android/ChildBrowser.java" target-dir="src/com/phonegap/plugins/childBrowser" />
    </platform>
</plugin>
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_file() -> Callable[[Path, str], Path]:
    return _write


@pytest.fixture
def make_plugin() -> Callable[..., Path]:
    """Create a plugin directory with a plugin.xml and optional extra files."""

    def _make(
        directory: Path,
        plugin_id: str,
        version: str = "1.0.0",
        body: str = "",
        files: Optional[Dict[str, str]] = None,
    ) -> Path:
        _write(
            directory / "plugin.xml",
            f'<plugin id="{plugin_id}" version="{version}" {ANDROID_NS_DECL}>'
            f"<name>{plugin_id}</name>{body}</plugin>",
        )
        for relative, content in (files or {}).items():
            _write(directory / relative, content)
        return directory

    return _make


@pytest.fixture
def child_browser_plugin(tmp_path) -> Path:
    plugin_dir = tmp_path / "sources" / "ChildBrowser"
    _write(plugin_dir / "plugin.xml", CHILD_BROWSER_PLUGIN_XML)
    _write(plugin_dir / "www" / "childbrowser.js", "window.childBrowser = {};\n")
    _write(
        plugin_dir / "src" / "android" / "ChildBrowser.java",
        "package com.phonegap.plugins.childBrowser;\npublic class ChildBrowser {}\n",
    )
    return plugin_dir


@pytest.fixture
def project_root(tmp_path) -> Path:
    """A project with an Android platform laid out under platforms/android."""
    root = tmp_path / "project"
    _write(root / "config.xml", PROJECT_CONFIG_XML)
    _write(root / "www" / "index.html", "<html>project</html>\n")
    _write(root / "www" / "js" / "app.js", "console.log('app');\n")
    _write(root / "res" / "screen" / "android" / "land-hdpi.png", "PNG")

    platform_dir = root / "platforms" / "android"
    _write(platform_dir / "AndroidManifest.xml", MANIFEST_XML)
    _write(platform_dir / "res" / "values" / "strings.xml", STRINGS_XML)
    _write(platform_dir / "res" / "xml" / "config.xml", PLATFORM_CONFIG_XML)
    _write(platform_dir / "src" / "org" / "example" / "app" / "MainActivity.java", MAIN_ACTIVITY_JAVA)
    _write(platform_dir / "assets" / "www" / "index.html", "<html>stale</html>\n")
    (platform_dir / "libs").mkdir(parents=True)
    return root


@pytest.fixture
def platform_dir(project_root) -> Path:
    return project_root / "platforms" / "android"
