from setuptools import setup, find_packages
setup(
    name="cma_comps",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "pydantic>=2",
        "httpx>=0.24",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        'console_scripts': [
            'cma_comps=cma_comps.__main__:main'
        ]
    }
)
