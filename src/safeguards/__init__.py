"""
Safeguards - Policy enforcement for packaged serverless deployments.

Safeguards sits between packaging and deploying a service. It evaluates the
policies declared under ``custom.safeguards`` against the compiled artifacts
and either approves, warns on, or blocks the deployment.
It provides:
- A built-in catalog of deployment policies
- Loading of custom policies from a service-local directory
- Concurrent evaluation with an ordered, aggregated verdict
- Console and JSON reporting

Example usage:
    $ safeguards check ./my-service --stage prod
    $ safeguards policies
"""

__version__ = "0.1.0"
__author__ = "Safeguards Contributors"

__all__ = [
    "__version__",
    "__author__",
]
