from setuptools import setup, find_packages

setup(
    name="appgw-ingress-controller",
    version="0.1.0",
    packages=find_packages(include=["ingress_controller", "ingress_controller.*"]),
    install_requires=[
        "kopf",
        "kubernetes",
        "Flask",
        "prometheus_client",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.9",
)
