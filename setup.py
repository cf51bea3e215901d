from pathlib import Path

from setuptools import find_packages, setup

version = (Path(__file__).parent / "typestester/VERSION").read_text("ascii").strip()


install_requires = [
    "Twisted>=21.7.0",
    "rich>=13.0.0",
]
extras_require = {
    "test": [
        "pytest>=7.0",
        "pytest-twisted>=1.14",
        "testfixtures",
    ],
}


setup(
    name="typestester",
    version=version,
    description="Runs the type tests of a package tree on a pool of persistent workers",
    long_description=open("README.rst", encoding="utf-8").read(),
    license="BSD",
    packages=find_packages(exclude=("tests", "tests.*")),
    include_package_data=True,
    package_data={"typestester": ["VERSION"]},
    zip_safe=False,
    entry_points={"console_scripts": ["typestester = typestester.cmdline:execute"]},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Operating System :: POSIX",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Testing",
    ],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
)
