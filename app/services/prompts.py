"""
Prompt templates for LangChain.
Centralized prompt management for consistency and easy updates.
"""

from langchain_core.prompts import ChatPromptTemplate


class PromptTemplates:
    """Centralized prompt templates for the application."""

    @staticmethod
    def get_insights_system_prompt() -> str:
        """Get system prompt for quiz insights."""
        return (
            "You are an educational analytics expert. You analyze quiz results and give "
            "educators concise, actionable insights. Always respond with valid JSON only."
        )

    @staticmethod
    def get_quiz_insights_prompt() -> ChatPromptTemplate:
        """Get prompt for whole-quiz insights."""
        return ChatPromptTemplate.from_messages([
            ("system", PromptTemplates.get_insights_system_prompt()),
            ("human", """Analyze the following quiz results and provide actionable insights for the educator.

Quiz: {quiz_title}
Total Submissions: {total_submissions}
Average Score: {average_percentage}
Highest Score: {highest_score}/{total_points}
Lowest Score: {lowest_score}/{total_points}

Question Performance:
{question_stats}

Please provide:
1. Overall Performance Summary (2-3 sentences)
2. Key Strengths (max 3)
3. Areas for Improvement (max 3)
4. Specific Recommendations (max 3)

Keep your response concise and actionable.

{format_instructions}"""),
        ])

    @staticmethod
    def get_question_suggestions_prompt() -> ChatPromptTemplate:
        """Get prompt for improving a single question."""
        return ChatPromptTemplate.from_messages([
            ("system", "You are an educational content expert who improves quiz questions."),
            ("human", """Analyze this quiz question and suggest improvements.

Question: "{question_text}"
Type: {question_type}
Success Rate: {success_rate}
Difficulty: {difficulty}
Common Wrong Answers: {wrong_answers}

Provide 2-3 specific, actionable suggestions to improve this question. Focus on clarity, difficulty adjustment, or distractor improvement.
Keep your response brief and practical."""),
        ])

    @staticmethod
    def get_learner_feedback_prompt() -> ChatPromptTemplate:
        """Get prompt for personalized learner feedback."""
        return ChatPromptTemplate.from_messages([
            ("system", "You are a supportive educator writing feedback for a learner."),
            ("human", """Provide personalized feedback for a learner based on their quiz performance.

Learner: {learner_name}
Quiz: {quiz_title}
Score: {score}/{total_points} ({percentage})
Questions Correct: {questions_correct}/{questions_total}

Provide:
1. Encouraging opening statement
2. 2-3 specific strengths or areas they did well
3. 1-2 areas for improvement with constructive suggestions
4. Motivating closing statement

Keep the tone positive, supportive, and encouraging. Maximum 150 words."""),
        ])
