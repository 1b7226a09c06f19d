from setuptools import find_namespace_packages, setup

# Installation en mode développement :
#   pip install -e .[test]

setup(
    name='medtrack',
    version='1.0.0',
    description="Suivi des stocks et des administrations de médicaments en clinique",
    packages=find_namespace_packages(include=['medtrack', 'medtrack.*'], exclude=['medtrack.tests', 'medtrack.tests.*']),
    python_requires='>=3.10',
    install_requires=[
        'fastapi',
        'uvicorn',
        'pydantic>=2',
        'reportlab',
        'tzdata',
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
        ],
    },
    entry_points={
        'console_scripts': ['medtrack=medtrack.__main__:main'],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Framework :: FastAPI',
    ],
)
