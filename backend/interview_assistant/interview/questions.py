import random

from interview_assistant.errors import InsufficientQuestions
from interview_assistant.interview.models import TIME_LIMITS, Difficulty, Question

QUESTIONS_PER_DIFFICULTY = 2
DIFFICULTY_ORDER = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)
QUESTIONS_PER_INTERVIEW = QUESTIONS_PER_DIFFICULTY * len(DIFFICULTY_ORDER)


def _q(question_id: str, difficulty: Difficulty, category: str, text: str, keywords: list[str]) -> Question:
    return Question(
        id=question_id,
        text=text,
        difficulty=difficulty,
        category=category,
        time_limit=TIME_LIMITS[difficulty],
        expected_keywords=tuple(keywords),
    )


# ---------- STATIC QUESTION BANK ----------

QUESTION_BANK: tuple[Question, ...] = (
    _q("easy-1", Difficulty.EASY, "React Fundamentals",
       "Explain what React is and why companies like Facebook, Netflix, and Airbnb choose it over other frameworks. What makes it special?",
       ["virtual dom", "component", "reusable", "performance", "ecosystem"]),
    _q("easy-2", Difficulty.EASY, "Web Development Basics",
       "What is the difference between frontend and backend development? How do they communicate with each other?",
       ["frontend", "backend", "api", "client", "server", "http"]),
    _q("easy-3", Difficulty.EASY, "API Concepts",
       "Explain what APIs are and why they are important in modern web development. Give a real-world example.",
       ["api", "interface", "data", "communication", "rest"]),
    _q("easy-4", Difficulty.EASY, "Development Tools",
       "What is the purpose of version control systems like Git? Why do development teams use them?",
       ["version control", "git", "collaboration", "history", "branches"]),
    _q("easy-5", Difficulty.EASY, "Frontend Concepts",
       "Explain the concept of responsive web design. Why is it important in today's world?",
       ["responsive", "mobile", "desktop", "css", "media queries"]),
    _q("easy-6", Difficulty.EASY, "Software Architecture",
       "What is the difference between a library and a framework? Give examples of each.",
       ["library", "framework", "control", "structure", "react", "angular"]),
    _q("easy-7", Difficulty.EASY, "Database Concepts",
       "Explain what databases are and why web applications need them. What's the difference between SQL and NoSQL?",
       ["database", "sql", "nosql", "data storage", "persistence"]),
    _q("easy-8", Difficulty.EASY, "Cloud & Infrastructure",
       "What is cloud computing and how has it changed web development? Name some popular cloud providers.",
       ["cloud", "aws", "azure", "scalability", "deployment"]),
    _q("easy-9", Difficulty.EASY, "Web Security",
       "Explain what HTTPS is and why it's important for websites. How does it make browsing safer?",
       ["https", "ssl", "encryption", "security", "certificate"]),
    _q("easy-10", Difficulty.EASY, "Web Fundamentals",
       "What is the role of a web browser in displaying websites? How does it process HTML, CSS, and JavaScript?",
       ["browser", "html", "css", "javascript", "rendering"]),

    _q("medium-1", Difficulty.MEDIUM, "React State Management",
       "Explain the concept of state management in React applications. When would you choose Redux over Context API and why?",
       ["state", "redux", "context", "global state", "predictable"]),
    _q("medium-2", Difficulty.MEDIUM, "Security Concepts",
       "What is the difference between authentication and authorization? How would you explain these concepts to a non-technical person?",
       ["authentication", "authorization", "identity", "permissions", "access control"]),
    _q("medium-3", Difficulty.MEDIUM, "Software Architecture",
       "Explain the concept of microservices architecture. What are its advantages and disadvantages compared to monolithic architecture?",
       ["microservices", "monolithic", "scalability", "complexity", "independence"]),
    _q("medium-4", Difficulty.MEDIUM, "DevOps & Deployment",
       "What is DevOps and how has it changed software development? Explain the concept of CI/CD pipelines.",
       ["devops", "ci/cd", "automation", "deployment", "integration"]),
    _q("medium-5", Difficulty.MEDIUM, "Performance Optimization",
       "Explain the concept of caching in web applications. What are different types of caching and when would you use each?",
       ["caching", "browser cache", "server cache", "cdn", "performance"]),
    _q("medium-6", Difficulty.MEDIUM, "Database Design",
       "What is the difference between SQL and NoSQL databases? When would you choose one over the other?",
       ["sql", "nosql", "relational", "document", "scalability", "consistency"]),
    _q("medium-7", Difficulty.MEDIUM, "API Design",
       "Explain the concept of RESTful APIs. What makes an API RESTful and what are the key principles?",
       ["rest", "stateless", "http methods", "resources", "uniform interface"]),
    _q("medium-8", Difficulty.MEDIUM, "Cloud Architecture",
       "What is serverless computing and how does it differ from traditional server-based applications? What are its pros and cons?",
       ["serverless", "functions", "scaling", "cost", "cold start"]),
    _q("medium-9", Difficulty.MEDIUM, "Modern Web Technologies",
       "Explain the concept of Progressive Web Apps (PWAs). How do they bridge the gap between web and mobile apps?",
       ["pwa", "service worker", "offline", "mobile", "app-like"]),
    _q("medium-10", Difficulty.MEDIUM, "Software Quality",
       "What is the importance of testing in software development? Explain different types of testing and their purposes.",
       ["testing", "unit tests", "integration", "quality assurance", "bugs"]),

    _q("hard-1", Difficulty.HARD, "System Design & Scalability",
       "How would you design a system to handle millions of concurrent users? Discuss scalability strategies, load balancing, and database considerations.",
       ["scalability", "load balancing", "horizontal scaling", "database sharding", "caching"]),
    _q("hard-2", Difficulty.HARD, "Distributed Systems",
       "Explain the CAP theorem and its implications for distributed systems. How do different databases handle these trade-offs?",
       ["cap theorem", "consistency", "availability", "partition tolerance", "distributed"]),
    _q("hard-3", Difficulty.HARD, "Network Architecture",
       "What are the key considerations when designing a global content delivery network (CDN)? How would you ensure fast content delivery worldwide?",
       ["cdn", "global distribution", "edge servers", "latency", "caching strategies"]),
    _q("hard-4", Difficulty.HARD, "Real-time Systems",
       "How would you approach building a real-time collaborative platform like Google Docs? What are the main technical challenges?",
       ["real-time", "collaboration", "conflict resolution", "websockets", "operational transform"]),
    _q("hard-5", Difficulty.HARD, "Data Consistency",
       "Explain the concept of eventual consistency in distributed systems. When is it acceptable and what are the trade-offs?",
       ["eventual consistency", "distributed systems", "trade-offs", "availability", "performance"]),
    _q("hard-6", Difficulty.HARD, "Machine Learning Systems",
       "How would you design a recommendation system for a platform like Netflix or Amazon? What algorithms and data would you consider?",
       ["recommendation system", "machine learning", "collaborative filtering", "data processing", "personalization"]),
    _q("hard-7", Difficulty.HARD, "Security Architecture",
       "What are the security considerations when building a financial application? How would you protect against common attacks?",
       ["security", "encryption", "authentication", "financial", "compliance", "attacks"]),
    _q("hard-8", Difficulty.HARD, "Search Systems",
       "How would you design a search engine that can index and search billions of web pages? Consider crawling, indexing, and ranking.",
       ["search engine", "indexing", "crawling", "ranking algorithms", "distributed processing"]),
    _q("hard-9", Difficulty.HARD, "Global Systems",
       "Explain the challenges of building a globally distributed database. How would you handle data replication and consistency across continents?",
       ["global database", "replication", "consistency", "latency", "data synchronization"]),
    _q("hard-10", Difficulty.HARD, "Big Data & IoT",
       "How would you architect a system to process and analyze real-time data streams from millions of IoT devices? Consider data ingestion, processing, and storage.",
       ["iot", "real-time processing", "data streams", "big data", "analytics", "scalability"]),
)


def questions_for(difficulty: Difficulty, bank: tuple[Question, ...] = QUESTION_BANK) -> list[Question]:
    return [q for q in bank if q.difficulty == difficulty]


# ---------- DIVERSE SAMPLING ----------

def select_diverse(pool: list[Question], count: int, rng: random.Random | None = None) -> list[Question]:
    """
    Shuffle the pool, then prefer questions from categories not yet picked.
    Remaining slots are filled from the shuffled order regardless of category.
    """
    if len(pool) < count:
        raise InsufficientQuestions(f"pool has {len(pool)} questions, {count} requested")

    shuffled = list(pool)
    (rng or random).shuffle(shuffled)

    selected: list[Question] = []
    used_categories: set[str] = set()

    for question in shuffled:
        if len(selected) >= count:
            break
        if question.category not in used_categories:
            selected.append(question)
            used_categories.add(question.category)

    for question in shuffled:
        if len(selected) >= count:
            break
        if question not in selected:
            selected.append(question)

    return selected


def select_questions(
    rng: random.Random | None = None,
    per_difficulty: int = QUESTIONS_PER_DIFFICULTY,
    bank: tuple[Question, ...] = QUESTION_BANK,
) -> list[Question]:
    selected: list[Question] = []
    for difficulty in DIFFICULTY_ORDER:
        selected.extend(select_diverse(questions_for(difficulty, bank), per_difficulty, rng=rng))
    return selected
