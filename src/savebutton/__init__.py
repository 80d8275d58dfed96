"""
Save Button -- local sync agent for the Save Button browser extension.

Keeps ~/.kaya in step with your account server. Anga, meta and words
land on disk; the password never does in plaintext.
"""

import os

__version__ = "0.1.0"
__author__ = "Save Button"

KAYA_HOME = os.environ.get("KAYA_HOME", "~/.kaya")
