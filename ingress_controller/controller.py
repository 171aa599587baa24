"""
Main controller module that initializes and runs the Application Gateway ingress operator.
"""

from . import handlers  # This will import and register all kopf handlers

# The handlers module contains the kopf decorators and the reconcile loop
# The config building itself lives in the appgw and brownfield packages
