"""
Setup script for MediaDeck
"""
from setuptools import find_packages, setup

setup(
    name='mediadeck',
    version='1.0.0',
    description='Local media player core: EQ/limiter signal graph, transport, crossfade and queue',
    packages=find_packages(include=['mediadeck', 'mediadeck.*']),
    python_requires='>=3.9',
    install_requires=[
        'PySide6',
        'numpy',
        'pedalboard',
        'mutagen',
        'python-dotenv',
    ],
    extras_require={
        # PyAudio needs PortAudio headers to build; without it output is headless
        'audio': ['pyaudio'],
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'mediadeck=mediadeck.app:main',
        ],
    },
)
