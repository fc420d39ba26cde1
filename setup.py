import io
import re

from setuptools import find_packages, setup

__version__ = re.search(
    r'__version__\s*=\s*[\'"]([^\'"]*)[\'"]',
    io.open("src/stagecoach/version.py", encoding="utf_8_sig").read(),
).group(1)


setup(
    name="stagecoach",
    version=__version__,
    description="stagecoach is a Python library for running a single continuous-integration job through its phases.",
    long_description="""stagecoach drives a build job through env, prepare, test, deploy and cleanup phases, running pluggable phase handlers and shell commands, and streams live status events to an observer.""",
    author="",
    author_email="",
    package_dir={"": "src"},
    packages=find_packages("src"),
    zip_safe=False,
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2",
        "pyzmq",
        "orjson",
        "fire",
    ],
    extras_require={
        "tests": ["pytest"],
    },
)
