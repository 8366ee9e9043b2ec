from setuptools import setup, find_packages

setup(
    name="blockmark",
    version="0.1.0",
    description="Block transform coding and image watermarking testbed - DCT/WHT pipeline, LSB/DCT/DWT/SVD watermarks, attacks and BER/NC evaluation",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.21.0",
        "Pillow>=9.0.0",
        "scipy>=1.7.0",
        "click>=8.0.0",
        "pandas>=1.3.0",
        "PyWavelets>=1.1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "blockmark=blockmark.cli:main",
        ],
    },
    python_requires=">=3.8",
)
