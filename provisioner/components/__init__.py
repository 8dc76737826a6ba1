"""
Pipeline stages of the site provisioner.

Each subpackage registers one or more stages with the StageRegistry when
imported; the orchestrator imports them all before resolving the order.
"""
