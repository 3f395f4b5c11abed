#!/usr/bin/env python

import os
from setuptools import setup, find_packages

about = {}
exec(compile(open("DynamicSurvEVAL/version.py").read(), "DynamicSurvEVAL/version.py", "exec"), about)


def read(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf8') as f:
        return f.read()


setup(
    name="DynamicSurvEVAL",
    version=about["__version__"],
    packages=find_packages(exclude=["tests", "tests.*"]),
    description="Time-dependent Brier score and ROC AUC for right-censored survival predictions.",
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Operating System :: OS Independent",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "Topic :: Scientific/Engineering :: Mathematics",
    ],
    python_requires='>=3.9',
    keywords="survival analysis, evaluation, metrics, brier score, time-dependent auc, ipcw",
    license="MIT",
    install_requires=read('requirements.txt').splitlines(),
    extras_require={
        "test": ["pytest"],
    },
)
