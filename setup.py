from setuptools import setup, find_packages
setup(
    name="florida_property_risk",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    package_data={"florida_property_risk": ["data/*.json"]},
    python_requires=">=3.9",
    install_requires=[
        "httpx>=0.24",
        "pydantic>=2.0",
        "fastapi>=0.100",
        "shapely>=2.0",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        'console_scripts': [
            'florida_property_risk=florida_property_risk.__main__:_safe_main'
        ]
    }
)
