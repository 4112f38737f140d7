from setuptools import setup, find_packages

setup(
    name='armteleop',
    version='0.1.0',
    packages=find_packages(exclude=['tests', 'scripts']),
    install_requires=[
        'jax',
        'jaxlib',
        'jaxopt',
        'urdf-parser-py',
        'numpy',
        'scipy',
        'pyyaml',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    python_requires='>=3.8',
    description='Dual-arm VR teleoperation: clutch, delta tracking and multi-branch IK arbitration',
    author='armteleop Team',
)
