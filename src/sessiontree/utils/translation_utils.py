#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# translation_utils.py - Utilities for translation support
#
import gettext
import os

# Default for system install
locale_dir = "/usr/share/locale"

if "APPIMAGE" in os.environ or "APPDIR" in os.environ:
    # utils/ -> sessiontree/ -> share/locale
    script_dir = os.path.dirname(os.path.abspath(__file__))
    share_dir = os.path.dirname(os.path.dirname(script_dir))
    appimage_locale = os.path.join(share_dir, "locale")
    if os.path.isdir(appimage_locale):
        locale_dir = appimage_locale

gettext.bindtextdomain("sessiontree", locale_dir)

_translation = gettext.translation("sessiontree", locale_dir, fallback=True)

# Export _ directly as the translation function
_ = _translation.gettext
