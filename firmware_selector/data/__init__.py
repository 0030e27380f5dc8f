"""
Decoders for the package indexes published by OpenWrt feeds.

This package is responsible for:
* Unwrapping and walking binary ADB (apk v3) ``packages.adb`` indexes.
* Parsing legacy ``Packages`` control files.
* Normalizing dependency strings from both formats.
"""
