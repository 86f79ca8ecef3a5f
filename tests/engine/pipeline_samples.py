"""Sample Jenkinsfiles shared by the engine tests."""

from datetime import datetime, timezone

DECLARATIVE = """@Library('shared-pipeline') _

pipeline {
    agent any

    parameters {
        string(name: 'VERSION', defaultValue: '1.0.0', description: 'Release version')
        choice(name: 'TARGET', choices: ['staging', 'production'], description: 'Deploy target')
        booleanParam(name: 'RUN_E2E', description: 'Run browser tests')
    }

    environment {
        APP_NAME = 'orders'
        REGISTRY = "registry.example.com"
        DOCKER_CREDS = credentials('docker-hub-creds')
    }

    options {
        timeout(time: 90, unit: 'SECONDS')
        retry(3)
        buildDiscarder(logRotator(daysToKeepStr: '14', numToKeepStr: '20'))
    }

    stages {
        stage('Build') {
            steps {
                withMaven(maven: 'maven-3') {
                    sh 'mvn -B package'
                }
            }
        }
        stage('Test') {
            matrix {
                axes {
                    axis {
                        name 'PLATFORM'
                        values 'linux', 'windows'
                    }
                    axis {
                        name 'JDK'
                        values '17', '21'
                    }
                }
                stages {
                    stage('Unit') {
                        steps {
                            sh 'mvn test'
                        }
                    }
                }
            }
        }
        stage('Checks') {
            parallel {
                stage('Lint') {
                    steps { sh 'make lint' }
                }
                stage('Security Scan') {
                    steps { sh 'make scan' }
                }
            }
        }
        stage('Deploy') {
            when {
                branch 'main'
            }
            steps {
                withCredentials([usernamePassword(credentialsId: 'deploy-user-pass', usernameVariable: 'DEPLOY_USER', passwordVariable: 'DEPLOY_PASS')]) {
                    sh './deploy.sh'
                }
            }
        }
    }

    post {
        always {
            junit 'target/surefire-reports/*.xml'
        }
        failure {
            slackSend(channel: '#builds', message: "Build failed")
        }
    }
}
"""

SCRIPTED = """node('linux') {
    stage('Checkout') {
        checkout scm
    }
    stage('Build') {
        docker.image('maven:3.9').inside {
            sh 'mvn -B package'
        }
    }
    stage('Publish') {
        docker.withRegistry('https://registry.example.com', 'registry-creds') {
            docker.build("orders:${env.BUILD_NUMBER}").push()
        }
    }
    parallel(
        'unit': { sh 'mvn test' },
        'integration': { sh 'mvn verify' }
    )
}
"""

# No pipeline/node root and an unclosed stage: forces the fallback path.
FRAGMENT = """stage('Build') {
    steps {
        sh 'make'
        archiveArtifacts(artifacts: 'out/**')
        script {
            def helpers = load 'helpers.groovy'
        }
    }
}
stage('Test') {
    junit 'reports/*.xml'
"""

FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def line_number(text: str, needle: str) -> int:
    """1-based line of the first line containing needle."""
    for number, line in enumerate(text.splitlines(), start=1):
        if needle in line:
            return number
    raise AssertionError(f"{needle!r} not found")
