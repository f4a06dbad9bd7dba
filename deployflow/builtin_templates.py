"""Templates shipped with deployflow.

They are merged into the template collection on load, so a fresh or
unreadable store still offers them.
"""

from __future__ import annotations

from typing import List

from .models import Template


def builtin_templates() -> List[Template]:
    """Return fresh copies of the built-in templates."""
    return [
        Template(
            id="next-vercel",
            name="Next.js + Vercel",
            description="Deploy a Next.js application to Vercel",
            category="web",
            framework="Next.js",
            language="TypeScript",
            tags=["React", "SSR", "Vercel"],
            difficulty="beginner",
            estimated_time=15,
            config={
                "platform": "vercel",
                "buildCommand": "npm run build",
                "outputDirectory": ".next",
                "installCommand": "npm install",
            },
            steps=[
                {
                    "title": "Prepare project",
                    "description": "Check project structure and dependencies",
                    "type": "setup",
                    "order": 1,
                    "commands": [
                        {"command": "npm install", "description": "Install dependencies"}
                    ],
                },
                {
                    "title": "Build project",
                    "description": "Compile and optimize the application",
                    "type": "build",
                    "order": 2,
                    "dependencies": ["setup"],
                    "commands": [
                        {"command": "npm run build", "description": "Production build"}
                    ],
                },
                {
                    "title": "Deploy to Vercel",
                    "description": "Upload the build to Vercel",
                    "type": "deploy",
                    "order": 3,
                    "dependencies": ["build"],
                    "commands": [
                        {"command": "vercel --prod", "description": "Production deploy"}
                    ],
                },
            ],
            requirements=["Node.js 18+", "npm", "Vercel CLI"],
            features=["Automatic deploys", "CDN", "SSL certificates", "Custom domains"],
        ),
        Template(
            id="react-netlify",
            name="React + Netlify",
            description="Deploy a React single page application to Netlify",
            category="web",
            framework="React",
            language="JavaScript",
            tags=["React", "SPA", "Netlify"],
            difficulty="beginner",
            estimated_time=10,
            config={
                "platform": "netlify",
                "buildCommand": "npm run build",
                "outputDirectory": "build",
                "installCommand": "npm install",
            },
            steps=[
                {
                    "title": "Prepare project",
                    "description": "Check project structure and dependencies",
                    "type": "setup",
                    "order": 1,
                    "commands": [
                        {"command": "npm install", "description": "Install dependencies"}
                    ],
                },
                {
                    "title": "Build project",
                    "description": "Compile the React application",
                    "type": "build",
                    "order": 2,
                    "dependencies": ["setup"],
                    "commands": [
                        {"command": "npm run build", "description": "Production build"}
                    ],
                },
                {
                    "title": "Deploy to Netlify",
                    "description": "Upload the build to Netlify",
                    "type": "deploy",
                    "order": 3,
                    "dependencies": ["build"],
                    "commands": [
                        {
                            "command": "netlify deploy --prod",
                            "description": "Production deploy",
                        }
                    ],
                },
            ],
            requirements=["Node.js 16+", "npm", "Netlify CLI"],
            features=["Form handling", "Functions", "CDN", "SSL certificates"],
        ),
        Template(
            id="docker-kubernetes",
            name="Docker + Kubernetes",
            description="Containerize an application and roll it out to Kubernetes",
            category="container",
            framework="Docker",
            language="Any",
            tags=["Docker", "Kubernetes", "Container", "Microservice"],
            difficulty="advanced",
            estimated_time=60,
            config={"platform": "kubernetes", "buildCommand": "docker build"},
            steps=[
                {
                    "title": "Create Dockerfile",
                    "type": "config",
                    "order": 1,
                    "commands": ["test -f Dockerfile"],
                },
                {
                    "title": "Build image",
                    "type": "build",
                    "order": 2,
                    "dependencies": ["config"],
                    "commands": ["docker build -t myapp:latest ."],
                },
                {
                    "key": "push",
                    "title": "Push image",
                    "type": "deploy",
                    "order": 3,
                    "dependencies": ["build"],
                    "commands": ["docker push myapp:latest"],
                },
                {
                    "key": "rollout",
                    "title": "Deploy to Kubernetes",
                    "type": "deploy",
                    "order": 4,
                    "dependencies": ["push"],
                    "commands": ["kubectl apply -f k8s/"],
                    "rollback_commands": ["kubectl rollout undo deployment/myapp"],
                    "failure_policy": "rollback",
                },
                {
                    "title": "Verify rollout",
                    "type": "verify",
                    "order": 5,
                    "dependencies": ["rollout"],
                    "commands": ["kubectl get pods", "kubectl get services"],
                },
            ],
            requirements=["Docker", "kubectl", "Kubernetes cluster", "Registry account"],
            features=["Rolling updates", "Health checks", "Service discovery"],
        ),
    ]
