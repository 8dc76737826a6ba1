"""
Provisioner for a static site served by Nginx over HTTPS.

Run ``python3 install.py`` (or the ``provision-site`` console script) as
root on a Debian- or RHEL-family host.
"""

from provisioner.config import SCRIPT_VERSION

__version__ = SCRIPT_VERSION
